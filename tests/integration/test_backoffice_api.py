"""
Integration tests for catalog, users, ledger administration and reporting endpoints.
"""

from barpos.models import LedgerTransaction, User


class TestProductsEndpoints:

    def test_crud(self, client, session):
        created = client.post('/api/products', json={
            'name': 'Ron Medellín', 'price': 90000, 'stock': 25, 'category': 'licores'
        })
        assert created.status_code == 201
        product_id = created.get_json()['id']

        client.put(f'/api/products/{product_id}', json={
            'name': 'Ron Medellín 8 años', 'price': 95000, 'stock': 20, 'category': 'licores'
        })
        products = client.get('/api/products').get_json()
        assert products[0]['name'] == 'Ron Medellín 8 años'
        assert products[0]['price'] == 95000

        deleted = client.delete(f'/api/products/{product_id}').get_json()
        assert deleted == {'success': True, 'changes': 1, 'softDeleted': False}
        assert client.get('/api/products').get_json() == []

    def test_for_sale_filter(self, client, session, beer):
        client.post('/api/products', json={'name': 'Cóctel Mojito', 'price': 23000, 'stock': 0})

        assert len(client.get('/api/products').get_json()) == 2
        assert [p['name'] for p in client.get('/api/products?forSale=true').get_json()] == ['Cerveza Nacional']

    def test_invalid_product(self, client, session):
        response = client.post('/api/products', json={'name': '', 'price': 1000})
        assert response.status_code == 400


class TestTablesEndpoints:

    def test_crud(self, client, session):
        table_id = client.post('/api/tables', json={'name': 'Barra 1', 'type': 'bar', 'capacity': 2}).get_json()['id']

        updated = client.put(f'/api/tables/{table_id}', json={'name': 'Barra Norte', 'type': 'bar', 'capacity': 3})
        assert updated.get_json() == {'success': True, 'changes': 1}

        tables = client.get('/api/tables').get_json()
        assert tables[0]['name'] == 'Barra Norte'
        assert tables[0]['status'] == 'free'

        assert client.delete(f'/api/tables/{table_id}').get_json() == {'success': True, 'changes': 1}

    def test_delete_occupied_is_conflict(self, client, session, beer, table1):
        table_id = table1.id
        client.post('/api/sales/save', json={
            'items': [{'id': beer.id, 'quantity': 1, 'price': 8000}], 'tableId': table_id
        })

        response = client.delete(f'/api/tables/{table_id}')
        assert response.status_code == 409


class TestUsersEndpoints:

    def test_login_logout(self, client, session, employee):
        response = client.post('/api/login', json={'username': 'caja1', 'password': 'secreto1'})
        data = response.get_json()
        assert data['success'] is True
        assert data['user']['role'] == 'employee'
        assert 'password_hash' not in data['user']

        assert client.get('/api/users').status_code == 200
        client.post('/api/logout')
        assert client.get('/api/users').status_code == 401

    def test_bad_login(self, client, session, employee):
        response = client.post('/api/login', json={'username': 'caja1', 'password': 'mal'})
        assert response.status_code == 401
        assert response.get_json()['success'] is False

    def test_admin_manages_users(self, client, session, super_admin, login):
        login('dueno')

        created = client.post('/api/users', json={'username': 'mesero', 'password': 'abcd', 'role': 'employee'})
        assert created.status_code == 201
        user_id = created.get_json()['id']

        check = client.get('/api/users/check-username?username=mesero').get_json()
        assert check == {'available': False}

        client.post(f'/api/users/{user_id}/reset-password', json={'password': 'nueva'})
        toggled = client.post(f'/api/users/{user_id}/toggle-status').get_json()
        assert toggled['is_active'] is False

        assert client.delete(f'/api/users/{user_id}').get_json()['success'] is True
        assert session.get(User, user_id) is None

    def test_employee_cannot_manage_users(self, client, session, employee, login):
        login('caja1')
        response = client.post('/api/users', json={'username': 'otro', 'password': 'abcd'})
        assert response.status_code == 403

    def test_super_admin_cannot_be_deleted(self, client, session, super_admin, login):
        admin_id = super_admin.id
        login('dueno')
        response = client.delete(f'/api/users/{admin_id}')
        assert response.status_code == 403


class TestLedgerEndpoints:

    def test_manual_entries_and_filters(self, client, session):
        client.post('/api/transactions/income', json={'amount': 5000, 'description': 'Propina', 'payment_method': 'cash'})
        client.post('/api/transactions/expense', json={'amount': 2000, 'description': 'Hielo', 'payment_method': 'transfer'})

        assert len(client.get('/api/transactions').get_json()) == 2
        assert [t['amount'] for t in client.get('/api/transactions?payment=transfer').get_json()] == [2000]

    def test_update_requires_login(self, client, session):
        entry_id = client.post('/api/transactions/income', json={'amount': 5000, 'description': 'x'}).get_json()['id']
        assert client.put(f'/api/transactions/{entry_id}', json={'amount': 1}).status_code == 401

    def test_only_super_admin_can_edit(self, client, session, employee, super_admin, login):
        entry_id = client.post('/api/transactions/income', json={'amount': 5000, 'description': 'x'}).get_json()['id']

        login('caja1')
        assert client.delete(f'/api/transactions/{entry_id}').status_code == 403

        login('dueno')
        updated = client.put(f'/api/transactions/{entry_id}', json={'amount': 4500, 'description': 'Corregido'})
        assert updated.get_json() == {'success': True, 'changes': 1}
        assert session.get(LedgerTransaction, entry_id).amount == 4500

        assert client.delete(f'/api/transactions/{entry_id}').get_json()['success'] is True


class TestReportingEndpoints:

    def test_dashboard_summary(self, client, session, beer):
        client.post('/api/sales/process', json={'items': [{'id': beer.id, 'quantity': 2, 'price': 8000}]})

        summary = client.get('/api/dashboard/summary').get_json()

        assert summary['totalSales'] == 16000
        assert summary['totalTransactions'] == 1

    def test_balance_report(self, client, session):
        client.post('/api/transactions/income', json={'amount': 7000, 'description': 'Propina'})

        data = client.get('/api/reports/balance?view=daily').get_json()

        assert data['view'] == 'daily'
        assert data['totals']['total_income'] == 7000
        assert len(data['series']) == 1

    def test_balance_report_bad_view(self, client, session):
        assert client.get('/api/reports/balance?view=hourly').status_code == 400


class TestSchedulesEndpoints:

    def test_create_and_list(self, client, session, employee):
        employee_id = employee.id
        created = client.post('/api/schedules', json={
            'userId': employee_id, 'workDate': '2026-10-10', 'startTime': '18:00', 'endTime': '02:00'
        })
        assert created.status_code == 201

        rows = client.get('/api/schedules?year=2026&month=10').get_json()
        assert rows[0]['username'] == 'caja1'
        assert [u['id'] for u in client.get('/api/schedules/users').get_json()] == [employee_id]


class TestAppSurface:

    def test_unknown_route_is_json_404(self, client, session):
        response = client.get('/api/nope')
        assert response.status_code == 404
        assert response.get_json()['success'] is False

    def test_metrics_endpoint(self, client, session):
        client.get('/health')
        response = client.get('/metrics')
        assert response.status_code == 200
        assert b'http_requests_total' in response.data

    def test_cors_for_allowed_origin(self, client, session):
        response = client.get('/health', headers={'Origin': 'http://localhost:3000'})
        assert response.headers['Access-Control-Allow-Origin'] == 'http://localhost:3000'

        other = client.get('/health', headers={'Origin': 'http://evil.example'})
        assert 'Access-Control-Allow-Origin' not in other.headers
