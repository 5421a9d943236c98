"""
Unit tests for the sale transaction engine.
"""

import pytest
from sqlalchemy.exc import OperationalError

from barpos.exceptions import NotFoundError, StorageError, ValidationError
from barpos.models import (
    Product, DiningTable, TableStatus, Sale, SaleItem, SaleStatus, SaleType,
    LedgerTransaction, TransactionType, LedgerReferenceType
)
from barpos.services import cash_session_service, inventory_service, sales_service, table_service


def _stock(session, product_id):
    session.expire_all()
    return session.get(Product, product_id).stock


class TestProcessSale:
    """Tests for process_sale."""

    def test_direct_sale(self, session, beer):
        """Two beers in cash: stock 50 -> 48 and one income of 16000."""
        beer_id = beer.id
        result = sales_service.process_sale(
            session,
            items=[{'id': beer_id, 'quantity': 2, 'price': 8000}],
            payment_method='cash',
            total=16000
        )

        assert 'sale_id' in result
        sale = session.get(Sale, result['sale_id'])
        assert sale.status == SaleStatus.PAID
        assert sale.sale_type == SaleType.DIRECT
        assert sale.total == 16000
        assert [(i.product_id, i.quantity, i.price) for i in sale.items] == [(beer_id, 2, 8000)]

        assert _stock(session, beer_id) == 48

        entries = session.query(LedgerTransaction).all()
        assert len(entries) == 1
        assert entries[0].type == TransactionType.INCOME
        assert entries[0].amount == 16000
        assert entries[0].payment_method == 'cash'
        assert entries[0].reference_type == LedgerReferenceType.SALE
        assert entries[0].reference_id == sale.id
        assert 'venta directa' in entries[0].description

    def test_declared_total_is_recorded_as_is(self, session, beer):
        """A discounted total goes to the ledger even if it differs from the lines."""
        result = sales_service.process_sale(
            session,
            items=[{'id': beer.id, 'quantity': 2, 'price': 8000}],
            total=15000
        )

        entry = session.query(LedgerTransaction).one()
        assert entry.amount == 15000
        assert session.get(Sale, result['sale_id']).total == 15000

    def test_total_defaults_to_line_sum(self, session, beer, whisky):
        result = sales_service.process_sale(
            session,
            items=[{'id': beer.id, 'quantity': 3, 'price': 8000}, {'id': whisky.id, 'quantity': 1}]
        )

        sale = session.get(Sale, result['sale_id'])
        assert sale.total == 3 * 8000 + 120000
        assert sale.items[1].price == 120000

    def test_table_sale_supersedes_pending_and_frees_table(self, session, beer, table1):
        table_id = table1.id
        sales_service.save_order(session, [{'id': beer.id, 'quantity': 3, 'price': 8000}], table_id=table_id)
        assert session.get(DiningTable, table_id).status == TableStatus.OCCUPIED

        result = sales_service.process_sale(
            session,
            items=[{'id': beer.id, 'quantity': 3, 'price': 8000}],
            table_id=table_id,
            payment_method='transfer',
            total=24000
        )

        session.expire_all()
        assert session.get(DiningTable, table_id).status == TableStatus.FREE
        assert table_service.find_pending_sale(session, table_id) is None
        sale = session.get(Sale, result['sale_id'])
        assert sale.sale_type == SaleType.TABLE
        assert sale.payment_method == 'transfer'
        assert session.query(Sale).count() == 1
        entry = session.query(LedgerTransaction).one()
        assert entry.description == f"Venta #{sale.id} - Mesa 1"

    def test_idempotency_key_processes_once(self, session, beer):
        """Repeating a submission with the same key is a no-op."""
        items = [{'id': beer.id, 'quantity': 2, 'price': 8000}]
        first = sales_service.process_sale(session, items, total=16000, idempotency_key='tx-001')
        second = sales_service.process_sale(session, items, total=16000, idempotency_key='tx-001')

        assert second == {'duplicate': True, 'sale_id': first['sale_id']}
        assert session.query(Sale).count() == 1
        assert session.query(LedgerTransaction).count() == 1
        assert _stock(session, beer.id) == 48

    def test_idempotency_race_on_unique_key(self, session, beer, monkeypatch):
        """A key committed by a concurrent request turns the insert into a duplicate answer."""
        existing = Sale(total=16000, status=SaleStatus.PAID, idempotency_key='tx-race')
        session.add(existing)
        session.commit()
        existing_id = existing.id

        original = sales_service._find_by_idempotency_key
        calls = []

        def miss_first_lookup(session_, key):
            calls.append(key)
            if len(calls) == 1:
                return None
            return original(session_, key)

        monkeypatch.setattr(sales_service, '_find_by_idempotency_key', miss_first_lookup)

        result = sales_service.process_sale(
            session, [{'id': beer.id, 'quantity': 2, 'price': 8000}], total=16000, idempotency_key='tx-race'
        )

        assert result == {'duplicate': True, 'sale_id': existing_id}
        assert session.query(Sale).count() == 1
        assert session.query(LedgerTransaction).count() == 0
        assert _stock(session, beer.id) == 50

    def test_empty_items_with_table_clears(self, session, beer, table1):
        table_id = table1.id
        sales_service.save_order(session, [{'id': beer.id, 'quantity': 1, 'price': 8000}], table_id=table_id)

        result = sales_service.process_sale(session, items=[], table_id=table_id)

        assert result == {'cleared': True}
        session.expire_all()
        assert session.get(DiningTable, table_id).status == TableStatus.FREE
        assert session.query(Sale).count() == 0
        assert session.query(LedgerTransaction).count() == 0
        assert _stock(session, beer.id) == 50

    def test_empty_items_direct_is_rejected(self, session):
        with pytest.raises(ValidationError):
            sales_service.process_sale(session, items=[])

    @pytest.mark.parametrize('item', [
        {'quantity': 0, 'price': 8000},
        {'quantity': -1, 'price': 8000},
        {'quantity': 1, 'price': -5},
        {'quantity': 'dos', 'price': 8000},
        {'quantity': 1.5, 'price': 8000},
    ])
    def test_invalid_items_write_nothing(self, session, beer, item):
        item = dict(item, id=beer.id)
        with pytest.raises(ValidationError):
            sales_service.process_sale(session, items=[item], total=8000)

        assert session.query(Sale).count() == 0
        assert _stock(session, beer.id) == 50

    def test_unknown_product(self, session, beer):
        with pytest.raises(NotFoundError):
            sales_service.process_sale(
                session, items=[{'id': beer.id, 'quantity': 1, 'price': 8000}, {'id': 9999, 'quantity': 1, 'price': 1}]
            )
        assert session.query(Sale).count() == 0

    def test_inactive_product(self, session, beer):
        beer.active = False
        session.commit()

        with pytest.raises(ValidationError):
            sales_service.process_sale(session, items=[{'id': beer.id, 'quantity': 1, 'price': 8000}])

    def test_unknown_table(self, session, beer):
        with pytest.raises(NotFoundError):
            sales_service.process_sale(session, items=[{'id': beer.id, 'quantity': 1, 'price': 8000}], table_id=999)

    def test_invalid_payment_method(self, session, beer):
        with pytest.raises(ValidationError):
            sales_service.process_sale(
                session, items=[{'id': beer.id, 'quantity': 1, 'price': 8000}], payment_method='card'
            )

    def test_stock_may_go_negative(self, session, whisky):
        sales_service.process_sale(session, items=[{'id': whisky.id, 'quantity': 20, 'price': 120000}])
        assert _stock(session, whisky.id) == -5

    def test_failure_in_stock_step_rolls_back_everything(self, session, beer, whisky, table1, monkeypatch):
        """A storage error on the second stock update leaves no trace of the sale."""
        table_id = table1.id
        beer_id = beer.id
        whisky_id = whisky.id
        sales_service.save_order(session, [{'id': beer_id, 'quantity': 1, 'price': 8000}], table_id=table_id)

        original = inventory_service.decrement_stock
        calls = []

        def failing_decrement(session_, product_id, quantity):
            calls.append(product_id)
            if len(calls) == 2:
                raise OperationalError('UPDATE products', {}, Exception('disk I/O error'))
            return original(session_, product_id, quantity)

        monkeypatch.setattr(inventory_service, 'decrement_stock', failing_decrement)

        with pytest.raises(StorageError):
            sales_service.process_sale(
                session,
                items=[{'id': beer_id, 'quantity': 2, 'price': 8000}, {'id': whisky_id, 'quantity': 1, 'price': 120000}],
                table_id=table_id,
                total=136000,
                idempotency_key='tx-fail'
            )

        assert calls == [beer_id, whisky_id]
        assert _stock(session, beer_id) == 50
        assert _stock(session, whisky_id) == 15
        assert session.query(Sale).filter_by(status=SaleStatus.PAID).count() == 0
        assert session.query(Sale).filter_by(idempotency_key='tx-fail').count() == 0
        assert session.query(LedgerTransaction).count() == 0
        # The pending order survives and the table is still occupied
        pending = table_service.find_pending_sale(session, table_id)
        assert pending is not None
        assert session.get(DiningTable, table_id).status == TableStatus.OCCUPIED

    def test_unexpected_error_leaves_nothing_for_the_next_commit(self, session, beer, whisky, monkeypatch):
        """A non-database error mid-sale is rolled back before later writes commit."""
        beer_id = beer.id
        whisky_id = whisky.id
        original = inventory_service.decrement_stock
        calls = []

        def broken_decrement(session_, product_id, quantity):
            calls.append(product_id)
            if len(calls) == 2:
                raise RuntimeError('unexpected')
            return original(session_, product_id, quantity)

        monkeypatch.setattr(inventory_service, 'decrement_stock', broken_decrement)

        with pytest.raises(RuntimeError):
            sales_service.process_sale(
                session,
                items=[{'id': beer_id, 'quantity': 2, 'price': 8000}, {'id': whisky_id, 'quantity': 1, 'price': 120000}],
                total=136000
            )

        # Another operation commits on the same session
        cash_session_service.open_session(session, 1000)

        assert session.query(Sale).count() == 0
        assert session.query(SaleItem).count() == 0
        assert session.query(LedgerTransaction).count() == 0
        assert _stock(session, beer_id) == 50
        assert _stock(session, whisky_id) == 15


class TestSaveOrder:
    """Tests for save_order."""

    def test_save_marks_table_occupied(self, session, beer, whisky, table1):
        table_id = table1.id
        result = sales_service.save_order(
            session,
            [{'id': beer.id, 'quantity': 2, 'price': 8000}, {'id': whisky.id, 'quantity': 1, 'price': 120000}],
            table_id=table_id
        )

        sale = session.get(Sale, result['sale_id'])
        assert sale.status == SaleStatus.PENDING
        assert sale.total == 136000
        assert sale.item_count == 3
        assert session.get(DiningTable, table_id).status == TableStatus.OCCUPIED
        # No stock or ledger effects
        assert _stock(session, beer.id) == 50
        assert session.query(LedgerTransaction).count() == 0

    def test_resave_replaces_pending_order(self, session, beer, table1):
        table_id = table1.id
        sales_service.save_order(session, [{'id': beer.id, 'quantity': 1, 'price': 8000}], table_id=table_id)
        second = sales_service.save_order(session, [{'id': beer.id, 'quantity': 4, 'price': 8000}], table_id=table_id)

        pending = session.query(Sale).filter_by(status=SaleStatus.PENDING).all()
        assert [s.id for s in pending] == [second['sale_id']]
        assert pending[0].total == 32000
        assert session.query(SaleItem).count() == 1

    def test_empty_cart_clears_table(self, session, beer, table1):
        """Saving no items frees the table and leaves no pending sale or ledger entry."""
        table_id = table1.id
        sales_service.save_order(session, [{'id': beer.id, 'quantity': 2, 'price': 8000}], table_id=table_id)

        result = sales_service.save_order(session, [], table_id=table_id)

        assert result == {'cleared': True}
        session.expire_all()
        assert session.get(DiningTable, table_id).status == TableStatus.FREE
        assert table_service.find_pending_sale(session, table_id) is None
        assert session.query(LedgerTransaction).count() == 0

    def test_non_positive_quantities_are_dropped(self, session, beer, whisky, table1):
        result = sales_service.save_order(
            session,
            [{'id': beer.id, 'quantity': 0, 'price': 8000}, {'id': whisky.id, 'quantity': 1, 'price': 120000}],
            table_id=table1.id
        )

        sale = session.get(Sale, result['sale_id'])
        assert [i.product_id for i in sale.items] == [whisky.id]

    def test_only_dropped_items_clears(self, session, beer, table1):
        result = sales_service.save_order(session, [{'id': beer.id, 'quantity': -2, 'price': 8000}], table_id=table1.id)
        assert result == {'cleared': True}

    def test_zero_total_clears(self, session, beer, table1):
        result = sales_service.save_order(session, [{'id': beer.id, 'quantity': 1, 'price': 0}], table_id=table1.id)
        assert result == {'cleared': True}
        assert session.query(Sale).count() == 0

    def test_direct_save_without_items_is_rejected(self, session):
        with pytest.raises(ValidationError):
            sales_service.save_order(session, [])

    def test_direct_pending_sale(self, session, beer):
        result = sales_service.save_order(session, [{'id': beer.id, 'quantity': 1, 'price': 8000}])
        sale = session.get(Sale, result['sale_id'])
        assert sale.table_id is None
        assert sale.sale_type == SaleType.DIRECT
        assert sale.status == SaleStatus.PENDING

    def test_constraint_violation_raises_storage_error(self, session, beer, table1, monkeypatch):
        """A second pending sale for the table hits the unique index and changes nothing."""
        table_id = table1.id
        first = sales_service.save_order(session, [{'id': beer.id, 'quantity': 1, 'price': 8000}], table_id=table_id)
        monkeypatch.setattr(table_service, 'discard_pending_sale', lambda session_, table_id_: None)

        with pytest.raises(StorageError):
            sales_service.save_order(session, [{'id': beer.id, 'quantity': 3, 'price': 8000}], table_id=table_id)

        session.expire_all()
        pending = session.query(Sale).filter_by(status=SaleStatus.PENDING).all()
        assert [s.id for s in pending] == [first['sale_id']]
        assert pending[0].total == 8000
        assert session.get(DiningTable, table_id).status == TableStatus.OCCUPIED


class TestTableInvariant:
    """Occupied <=> exactly one pending sale, after any sequence of operations."""

    def test_mixed_sequence_keeps_invariant(self, session, beer, whisky, table1, table2):
        t1, t2 = table1.id, table2.id
        beer_item = {'id': beer.id, 'quantity': 1, 'price': 8000}
        whisky_item = {'id': whisky.id, 'quantity': 1, 'price': 120000}

        steps = [
            lambda: sales_service.save_order(session, [beer_item], table_id=t1),
            lambda: sales_service.save_order(session, [beer_item, whisky_item], table_id=t2),
            lambda: sales_service.save_order(session, [whisky_item], table_id=t1),
            lambda: sales_service.process_sale(session, [beer_item], table_id=t2),
            lambda: sales_service.save_order(session, [], table_id=t1),
            lambda: sales_service.save_order(session, [beer_item], table_id=t1),
            lambda: table_service.clear_table(session, t1),
            lambda: sales_service.process_sale(session, [], table_id=t2),
            lambda: sales_service.save_order(session, [beer_item], table_id=t2),
        ]

        for step in steps:
            step()
            session.expire_all()
            assert table_service.find_inconsistent_tables(session) == []

        assert session.get(DiningTable, t1).status == TableStatus.FREE
        assert session.get(DiningTable, t2).status == TableStatus.OCCUPIED
        pending = session.query(Sale).filter_by(status=SaleStatus.PENDING).all()
        assert [s.table_id for s in pending] == [t2]


class TestListSales:

    def test_filter_by_status(self, session, beer, table1):
        sales_service.save_order(session, [{'id': beer.id, 'quantity': 1, 'price': 8000}], table_id=table1.id)
        sales_service.process_sale(session, [{'id': beer.id, 'quantity': 1, 'price': 8000}])

        assert len(sales_service.list_sales(session)) == 2
        assert len(sales_service.list_sales(session, status='paid')) == 1
        with pytest.raises(ValidationError):
            sales_service.list_sales(session, status='void')

    def test_get_missing_sale(self, session):
        with pytest.raises(NotFoundError):
            sales_service.get_sale(session, 12345)
