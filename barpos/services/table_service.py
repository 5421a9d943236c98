"""
Table service.
Occupancy state machine (free <-> occupied) and table directory.

A table is occupied exactly when it has one pending sale. Every status
change goes through mark_occupied / mark_free inside the same unit of work
that creates or removes the pending sale.
"""
import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from barpos.database import unit_of_work
from barpos.exceptions import ConflictError, NotFoundError, ValidationError
from barpos.models import DiningTable, TableStatus, Sale, SaleItem, SaleStatus
from barpos.services.cache_service import invalidate_reporting_cache

logger = logging.getLogger(__name__)

TABLE_TYPES = ('table', 'bar')


def get_table(session, table_id) -> DiningTable:
    table = session.get(DiningTable, table_id)
    if not table:
        raise NotFoundError('Mesa no encontrada')
    return table


def find_pending_sale(session, table_id: int):
    """Return the table's pending sale, or None."""
    return (
        session.query(Sale)
        .filter(Sale.table_id == table_id, Sale.status == SaleStatus.PENDING)
        .first()
    )


def discard_pending_sale(session, table_id: int) -> bool:
    """
    Delete the table's pending sale (and its items) inside the caller's unit of work.

    Flushes immediately so a new pending sale for the same table can be
    inserted afterwards without hitting uq_sales_pending_table.
    """
    pending = find_pending_sale(session, table_id)
    if pending is None:
        return False
    session.delete(pending)
    session.flush()
    return True


def mark_occupied(table: DiningTable) -> None:
    if table.status != TableStatus.OCCUPIED:
        table.status = TableStatus.OCCUPIED


def mark_free(table: DiningTable) -> None:
    if table.status != TableStatus.FREE:
        table.status = TableStatus.FREE


def clear_table(session, table_id: int) -> dict:
    """Free a table and purge its pending order. No stock or ledger changes."""
    with unit_of_work(session):
        table = get_table(session, table_id)
        discarded = discard_pending_sale(session, table.id)
        mark_free(table)

    invalidate_reporting_cache()
    logger.info(f"Table {table_id} cleared (pending order discarded={discarded})")
    return {'cleared': True}


def list_tables(session) -> list:
    """
    List tables with the running total and item count of their pending order.
    """
    pending_totals = (
        session.query(
            Sale.table_id.label('table_id'),
            Sale.total.label('current_total'),
            func.coalesce(func.sum(SaleItem.quantity), 0).label('item_count')
        )
        .outerjoin(SaleItem, SaleItem.sale_id == Sale.id)
        .filter(Sale.status == SaleStatus.PENDING, Sale.table_id.isnot(None))
        .group_by(Sale.table_id, Sale.total)
        .all()
    )
    by_table = {row.table_id: row for row in pending_totals}

    result = []
    for table in session.query(DiningTable).order_by(DiningTable.id).all():
        data = table.to_dict()
        pending = by_table.get(table.id)
        data['currentTotal'] = int(pending.current_total) if pending else 0
        data['itemCount'] = int(pending.item_count) if pending else 0
        result.append(data)
    return result


def list_free_tables(session):
    return (
        session.query(DiningTable)
        .filter(DiningTable.status == TableStatus.FREE)
        .order_by(DiningTable.id)
        .all()
    )


def get_table_order(session, table_id: int) -> list:
    """Items of the table's pending order (empty list if none)."""
    get_table(session, table_id)
    pending = find_pending_sale(session, table_id)
    if pending is None:
        return []
    return [item.to_dict() for item in pending.items]


def find_inconsistent_tables(session) -> list:
    """
    Return ids of tables whose status disagrees with their pending sales.

    A non-empty result means a bug: the state machine should make this
    impossible.
    """
    pending_ids = {
        row.table_id for row in
        session.query(Sale.table_id)
        .filter(Sale.status == SaleStatus.PENDING, Sale.table_id.isnot(None))
        .all()
    }
    inconsistent = []
    for table in session.query(DiningTable).all():
        if table.is_occupied != (table.id in pending_ids):
            inconsistent.append(table.id)
    return inconsistent


def _validate_table_fields(name, type_, capacity):
    name = (name or '').strip()
    if not name:
        raise ValidationError('El nombre de la mesa es requerido')
    type_ = (type_ or 'table').strip().lower()
    if type_ not in TABLE_TYPES:
        raise ValidationError('Tipo de mesa inválido. Use table o bar.')
    try:
        capacity = int(capacity if capacity not in (None, '') else 4)
    except (TypeError, ValueError):
        raise ValidationError('La capacidad debe ser un número entero')
    if capacity <= 0:
        raise ValidationError('La capacidad debe ser mayor a 0')
    return name, type_, capacity


def create_table(session, name, type_='table', capacity=4) -> int:
    name, type_, capacity = _validate_table_fields(name, type_, capacity)
    try:
        with unit_of_work(session):
            table = DiningTable(name=name, type=type_, capacity=capacity, status=TableStatus.FREE)
            session.add(table)
            session.flush()
            table_id = table.id
    except IntegrityError:
        raise ValidationError(f'Ya existe una mesa llamada "{name}"')

    logger.info(f"Table created: id={table_id} name={name!r}")
    return table_id


def update_table(session, table_id: int, name, type_='table', capacity=4) -> int:
    """Update name/type/capacity. Status is owned by the order flow."""
    name, type_, capacity = _validate_table_fields(name, type_, capacity)
    try:
        with unit_of_work(session):
            table = get_table(session, table_id)
            table.name = name
            table.type = type_
            table.capacity = capacity
    except IntegrityError:
        raise ValidationError(f'Ya existe una mesa llamada "{name}"')
    return 1


def delete_table(session, table_id: int) -> int:
    with unit_of_work(session):
        table = get_table(session, table_id)
        if table.is_occupied:
            raise ConflictError('No se puede eliminar una mesa ocupada')
        session.delete(table)

    logger.info(f"Table {table_id} deleted")
    return 1
