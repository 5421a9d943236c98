"""
Sales service.
Sale transaction engine: paid sales (process) and table drafts (save).

Each operation validates its input before writing anything and then runs
as one unit of work: sale, items, stock, ledger and table status are
committed together or not at all.
"""
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError

from barpos.database import unit_of_work
from barpos.exceptions import NotFoundError, StorageError, ValidationError
from barpos.models import (
    Product, Sale, SaleItem, SaleStatus, SaleType,
    TransactionType, LedgerReferenceType
)
from barpos.services import inventory_service, ledger_service, table_service
from barpos.services.cache_service import invalidate_reporting_cache
from barpos.utils.number_format import parse_amount, parse_quantity

logger = logging.getLogger(__name__)

IDEMPOTENCY_KEY_MAX_LENGTH = 64


def _parse_items(raw_items, drop_non_positive: bool) -> list:
    """
    Normalize client items [{id, quantity, price}] to
    [{'product_id', 'quantity', 'price'}].

    price may be None, meaning "use the current catalog price".

    Raises:
        ValidationError: malformed item, or non-positive quantity when
            drop_non_positive is False
    """
    if raw_items is None:
        return []
    if not isinstance(raw_items, (list, tuple)):
        raise ValidationError('Los productos deben enviarse como una lista')

    items = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            raise ValidationError('Producto inválido en la venta')

        product_id = raw.get('id', raw.get('product_id'))
        try:
            product_id = int(product_id)
        except (TypeError, ValueError):
            raise ValidationError('Producto inválido en la venta')

        try:
            quantity = parse_quantity(raw.get('quantity', raw.get('qty')))
        except ValueError as e:
            raise ValidationError(str(e))
        if quantity <= 0:
            if drop_non_positive:
                continue
            raise ValidationError('La cantidad debe ser mayor a 0')

        price = raw.get('price')
        if price is not None:
            try:
                price = parse_amount(price, field='precio')
            except ValueError as e:
                raise ValidationError(str(e))

        items.append({'product_id': product_id, 'quantity': quantity, 'price': price})
    return items


def _load_products(session, items: list) -> dict:
    """
    Check every referenced product exists and is active; fill missing prices.

    Returns:
        dict product_id -> Product
    """
    product_ids = {item['product_id'] for item in items}
    products = {
        p.id: p for p in session.query(Product).filter(Product.id.in_(product_ids)).all()
    }
    for item in items:
        product = products.get(item['product_id'])
        if product is None:
            raise NotFoundError(f"Producto {item['product_id']} no encontrado")
        if not product.active:
            raise ValidationError(f'El producto "{product.name}" no está disponible')
        if item['price'] is None:
            item['price'] = product.price
    return products


def _normalize_idempotency_key(value) -> Optional[str]:
    if value is None:
        return None
    key = str(value).strip()
    if not key:
        return None
    if len(key) > IDEMPOTENCY_KEY_MAX_LENGTH:
        raise ValidationError('La clave de idempotencia es demasiado larga')
    return key


def _find_by_idempotency_key(session, key: str):
    return session.query(Sale.id).filter(Sale.idempotency_key == key).first()


def _sale_description(sale_id: int, table) -> str:
    if table is not None:
        return f'Venta #{sale_id} - {table.name}'
    return f'Venta #{sale_id} - venta directa'


def process_sale(
    session,
    items,
    table_id: Optional[int] = None,
    payment_method=None,
    total=None,
    idempotency_key=None,
    user_id: Optional[int] = None
) -> dict:
    """
    Process a paid sale.

    Args:
        items: list of {id, quantity, price}
        table_id: table being charged, or None for a direct sale
        payment_method: 'cash' (default) or 'transfer'
        total: amount charged, recorded as-is in the ledger
            (defaults to the sum of the lines)
        idempotency_key: client token; a repeated key is a no-op

    Returns:
        {'sale_id': id} | {'duplicate': True, 'sale_id': id} | {'cleared': True}

    Raises:
        ValidationError, NotFoundError: invalid input, nothing written
        StorageError: the database failed, nothing written
    """
    key = _normalize_idempotency_key(idempotency_key)
    if key:
        existing = _find_by_idempotency_key(session, key)
        if existing:
            logger.info(f"Duplicate sale submission ignored: key={key} sale_id={existing.id}")
            return {'duplicate': True, 'sale_id': existing.id}

    payment_method = ledger_service.parse_payment_method(payment_method)
    parsed = _parse_items(items, drop_non_positive=False)

    if not parsed:
        if table_id is None:
            raise ValidationError('La venta no tiene productos')
        return table_service.clear_table(session, table_id)

    table = table_service.get_table(session, table_id) if table_id is not None else None
    _load_products(session, parsed)

    if total is None or total == '':
        declared_total = sum(item['quantity'] * item['price'] for item in parsed)
    else:
        try:
            declared_total = parse_amount(total, field='total')
        except ValueError as e:
            raise ValidationError(str(e))

    try:
        with unit_of_work(session):
            if table is not None:
                table_service.discard_pending_sale(session, table.id)

            sale = Sale(
                user_id=user_id,
                table_id=table.id if table is not None else None,
                total=declared_total,
                sale_type=SaleType.TABLE if table is not None else SaleType.DIRECT,
                payment_method=payment_method,
                status=SaleStatus.PAID,
                idempotency_key=key
            )
            session.add(sale)
            session.flush()
            sale_id = sale.id

            for item in parsed:
                session.add(SaleItem(
                    sale_id=sale_id,
                    product_id=item['product_id'],
                    quantity=item['quantity'],
                    price=item['price']
                ))
            session.flush()

            for item in parsed:
                inventory_service.decrement_stock(session, item['product_id'], item['quantity'])

            ledger_service.post_entry(
                session,
                TransactionType.INCOME,
                declared_total,
                _sale_description(sale_id, table),
                payment_method=payment_method,
                created_by=user_id,
                reference_type=LedgerReferenceType.SALE,
                reference_id=sale_id
            )

            if table is not None:
                table_service.mark_free(table)

    except IntegrityError as e:
        # Lost the race on the idempotency key: the other request committed the sale
        if key:
            existing = _find_by_idempotency_key(session, key)
            if existing:
                logger.info(f"Concurrent duplicate sale ignored: key={key} sale_id={existing.id}")
                return {'duplicate': True, 'sale_id': existing.id}
        logger.exception(f"Sale rolled back on constraint violation: {e}")
        raise StorageError() from e

    invalidate_reporting_cache()
    logger.info(
        f"Sale processed: id={sale_id} total={declared_total} method={payment_method} "
        f"table={table_id} items={len(parsed)}"
    )
    return {'sale_id': sale_id}


def save_order(
    session,
    items,
    table_id: Optional[int] = None,
    payment_method=None,
    user_id: Optional[int] = None
) -> dict:
    """
    Save (replace) the pending order of a table.

    Items with non-positive quantity are dropped. An empty cart (or a zero
    total) frees the table and stores nothing. Never touches stock or the
    ledger.

    Returns:
        {'sale_id': id} | {'cleared': True}
    """
    payment_method = ledger_service.parse_payment_method(payment_method)
    parsed = _parse_items(items, drop_non_positive=True)

    table = table_service.get_table(session, table_id) if table_id is not None else None
    if parsed:
        _load_products(session, parsed)
    total = sum(item['quantity'] * item['price'] for item in parsed)

    if not parsed or total <= 0:
        if table is None:
            raise ValidationError('El pedido no tiene productos')
        return table_service.clear_table(session, table.id)

    try:
        with unit_of_work(session):
            if table is not None:
                table_service.discard_pending_sale(session, table.id)

            sale = Sale(
                user_id=user_id,
                table_id=table.id if table is not None else None,
                total=total,
                sale_type=SaleType.TABLE if table is not None else SaleType.DIRECT,
                payment_method=payment_method,
                status=SaleStatus.PENDING
            )
            sale.items = [
                SaleItem(product_id=item['product_id'], quantity=item['quantity'], price=item['price'])
                for item in parsed
            ]
            session.add(sale)
            session.flush()
            sale_id = sale.id

            if table is not None:
                table_service.mark_occupied(table)
    except IntegrityError as e:
        logger.exception(f"Order save rolled back on constraint violation: {e}")
        raise StorageError() from e

    invalidate_reporting_cache()
    logger.info(f"Order saved: sale_id={sale_id} table={table_id} total={total} items={len(parsed)}")
    return {'sale_id': sale_id}


def list_sales(session, status=None, start_dt=None, end_dt=None):
    """List sales newest first, optionally filtered by status and created_at window."""
    query = session.query(Sale)
    if status:
        try:
            query = query.filter(Sale.status == SaleStatus(str(status).lower()))
        except ValueError:
            raise ValidationError('Estado de venta inválido. Use pending o paid.')
    if start_dt:
        query = query.filter(Sale.created_at >= start_dt)
    if end_dt:
        query = query.filter(Sale.created_at < end_dt)
    return query.order_by(Sale.created_at.desc(), Sale.id.desc()).all()


def get_sale(session, sale_id: int) -> Sale:
    sale = session.get(Sale, sale_id)
    if not sale:
        raise NotFoundError('Venta no encontrada')
    return sale
