import pytest
import os
import tempfile

# Tests run against a throwaway SQLite file with Redis caching off
_test_db_dir = tempfile.mkdtemp(prefix='barpos-tests-')
os.environ['DATABASE_URL'] = f"sqlite:///{os.path.join(_test_db_dir, 'test.db')}"
os.environ['CACHE_ENABLED'] = 'false'
os.environ['FLASK_ENV'] = 'testing'

from barpos import create_app
from barpos import database
from barpos.database import Base, get_session
from barpos.models import User, UserRole, Product, DiningTable, TableStatus


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing."""
    app = create_app('config.Config')
    app.config['TESTING'] = True
    database.create_all()
    return app


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Database session; every row is wiped after the test."""
    session = get_session()
    yield session
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.remove()


@pytest.fixture(scope='function')
def employee(session):
    user = User(username='caja1', full_name='Cajero Uno', role=UserRole.EMPLOYEE.value, is_active=True)
    user.set_password('secreto1')
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def super_admin(session):
    user = User(username='dueno', full_name='Dueño', role=UserRole.SUPER_ADMIN.value, is_active=True)
    user.set_password('secreto1')
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def beer(session):
    """Cerveza Nacional: 8000 COP, stock 50."""
    product = Product(name='Cerveza Nacional', price=8000, stock=50, category='bebidas')
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def whisky(session):
    """Whisky: 120000 COP, stock 15."""
    product = Product(name='Whisky Old Parr', price=120000, stock=15, category='licores')
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def table1(session):
    table = DiningTable(name='Mesa 1', type='table', capacity=4, status=TableStatus.FREE)
    session.add(table)
    session.commit()
    return table


@pytest.fixture(scope='function')
def table2(session):
    table = DiningTable(name='Mesa 2', type='table', capacity=4, status=TableStatus.FREE)
    session.add(table)
    session.commit()
    return table


@pytest.fixture(scope='function')
def login(client):
    """Log the test client in as the given user."""
    def _login(username, password='secreto1'):
        response = client.post('/api/login', json={'username': username, 'password': password})
        assert response.status_code == 200
        return response
    return _login
