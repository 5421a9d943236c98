"""
Flask CLI commands.

Commands:
- flask init-db: Create all tables
- flask seed-demo: Load the demo catalog and tables
- flask create-user: Create a login user
"""

import click
from barpos import database
from barpos.exceptions import PosError
from barpos.models import Product, DiningTable, TableStatus
from barpos.services import user_service

DEMO_PRODUCTS = [
    ('Cerveza Nacional', 8000, 50, 'bebidas'),
    ('Cerveza Importada', 12000, 30, 'bebidas'),
    ('Vino Tinto Copa', 35000, 20, 'bebidas'),
    ('Whisky Old Parr', 120000, 15, 'licores'),
    ('Ron Medellín', 90000, 25, 'licores'),
    ('Vodka Absolut', 85000, 20, 'licores'),
    ('Tequila José Cuervo', 95000, 18, 'licores'),
    ('Cóctel Margarita', 25000, 0, 'cocteles'),
    ('Cóctel Mojito', 23000, 0, 'cocteles'),
    ('Cóctel Piña Colada', 27000, 0, 'cocteles'),
]

DEMO_TABLES = [(f'Mesa {n}', 'table', 4) for n in range(1, 11)] + [('Barra 1', 'bar', 2)]


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create every table."""
        database.create_all()
        click.echo(click.style('✅ Base de datos inicializada', fg='green'))

    @app.cli.command('seed-demo')
    def seed_demo():
        """Load demo products and tables (skips rows that already exist)."""
        db_session = database.get_session()
        created_products = 0
        created_tables = 0

        with database.unit_of_work(db_session):
            for name, price, stock, category in DEMO_PRODUCTS:
                if not db_session.query(Product).filter_by(name=name).first():
                    db_session.add(Product(name=name, price=price, stock=stock, category=category))
                    created_products += 1

            for name, type_, capacity in DEMO_TABLES:
                if not db_session.query(DiningTable).filter_by(name=name).first():
                    db_session.add(DiningTable(name=name, type=type_, capacity=capacity, status=TableStatus.FREE))
                    created_tables += 1

        click.echo(click.style(
            f'✅ Datos demo cargados: {created_products} productos, {created_tables} mesas',
            fg='green'
        ))

    @app.cli.command('create-user')
    @click.option('--username', prompt=True, help='Login name')
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
    @click.option('--role', type=click.Choice(['employee', 'admin', 'super_admin']), default='employee')
    @click.option('--full-name', default=None, help='Display name')
    def create_user(username, password, role, full_name):
        """Create a user that can log into the POS."""
        try:
            user_id = user_service.create_user(
                database.get_session(), username, password, role=role, full_name=full_name
            )
        except PosError as e:
            click.echo(click.style(f'❌ {e.message}', fg='red'))
            raise SystemExit(1)

        click.echo(click.style('\n✅ Usuario creado exitosamente!', fg='green', bold=True))
        click.echo(f'   Usuario: {username}')
        click.echo(f'   Rol: {role}')
        click.echo(f'   ID: {user_id}')
