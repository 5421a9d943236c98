"""
Inventory service.
Product catalog maintenance and the stock decrement used by the sale engine.
"""
import logging

from barpos.database import unit_of_work
from barpos.exceptions import NotFoundError, ValidationError
from barpos.models import Product, SaleItem
from barpos.utils.number_format import parse_amount

logger = logging.getLogger(__name__)


def decrement_stock(session, product_id: int, quantity: int) -> int:
    """
    Decrement a product's stock in a single UPDATE statement.

    Runs inside the caller's unit of work and never commits. Stock may go
    negative when concurrent sales overdraw it.

    Returns:
        int: rows updated (always 1)

    Raises:
        NotFoundError: if the product disappeared
    """
    updated = (
        session.query(Product)
        .filter(Product.id == product_id)
        .update({Product.stock: Product.stock - quantity}, synchronize_session=False)
    )
    if updated == 0:
        raise NotFoundError(f'Producto {product_id} no encontrado')
    return updated


def get_product(session, product_id: int) -> Product:
    product = session.get(Product, product_id)
    if not product:
        raise NotFoundError('Producto no encontrado')
    return product


def list_products(session, for_sale: bool = False):
    """List active products ordered by name. for_sale keeps only products with stock."""
    query = session.query(Product).filter(Product.active.is_(True))
    if for_sale:
        query = query.filter(Product.stock > 0)
    return query.order_by(Product.name).all()


def _validate_product_fields(name, price, stock, category):
    name = (name or '').strip()
    if not name:
        raise ValidationError('El nombre del producto es requerido')
    try:
        price = parse_amount(price, field='precio')
    except ValueError as e:
        raise ValidationError(str(e))
    try:
        stock = int(stock if stock not in (None, '') else 0)
    except (TypeError, ValueError):
        raise ValidationError('El stock debe ser un número entero')
    if stock < 0:
        raise ValidationError('El stock no puede ser negativo')
    category = (category or '').strip() or 'general'
    return name, price, stock, category


def create_product(session, name, price, stock=0, category=None) -> int:
    name, price, stock, category = _validate_product_fields(name, price, stock, category)

    with unit_of_work(session):
        product = Product(name=name, price=price, stock=stock, category=category, active=True)
        session.add(product)
        session.flush()
        product_id = product.id

    logger.info(f"Product created: id={product_id} name={name!r}")
    return product_id


def update_product(session, product_id: int, name, price, stock, category=None) -> int:
    """Update a product. Returns the number of changed rows."""
    name, price, stock, category = _validate_product_fields(name, price, stock, category)

    with unit_of_work(session):
        product = get_product(session, product_id)
        product.name = name
        product.price = price
        product.stock = stock
        product.category = category

    return 1


def delete_product(session, product_id: int) -> dict:
    """
    Delete a product.

    Products referenced by any sale item are soft-deleted (active=False) so
    sales history keeps its lines; unreferenced products are removed.
    """
    with unit_of_work(session):
        product = get_product(session, product_id)
        referenced = session.query(SaleItem.id).filter(SaleItem.product_id == product_id).first()
        if referenced:
            product.active = False
            soft = True
        else:
            session.delete(product)
            soft = False

    logger.info(f"Product {product_id} {'deactivated' if soft else 'deleted'}")
    return {'changes': 1, 'soft_deleted': soft}


def count_low_stock(session, threshold: int) -> int:
    return (
        session.query(Product)
        .filter(Product.active.is_(True), Product.stock < threshold)
        .count()
    )
