"""
Integration tests for the cash drawer and credit endpoints.
"""


class TestCashEndpoints:

    def test_open_summary_close(self, client, session, beer):
        beer_id = beer.id
        opened = client.post('/api/cash/open', json={'opening_balance': 100000})
        assert opened.status_code == 200
        assert opened.get_json()['success'] is True

        client.post('/api/transactions/income', json={
            'amount': 20000, 'description': 'Propinas', 'payment_method': 'cash'
        })
        client.post('/api/sales/process', json={
            'items': [{'id': beer_id, 'quantity': 3, 'price': 10000}], 'total': 30000, 'payment_method': 'cash'
        })

        summary = client.get('/api/cash/summary').get_json()
        assert summary['hasOpen'] is True
        assert summary['suggestedClose'] == 150000

        turn = client.get('/api/cash/turn-summary').get_json()
        assert turn['sales'] == 30000
        assert turn['otherIncome'] == 20000
        assert turn['incomeCash'] == 50000

        closed = client.post('/api/cash/close', json={'closing_balance': 150000}).get_json()
        assert closed == {'success': True, 'changes': 1}
        assert client.get('/api/cash/summary').get_json() == {'hasOpen': False}

        sessions = client.get('/api/cash/sessions?status=closed').get_json()
        assert sessions[0]['closing_balance'] == 150000

    def test_double_open_conflict(self, client, session):
        client.post('/api/cash/open', json={'opening_balance': 0})
        response = client.post('/api/cash/open', json={'opening_balance': 0})

        assert response.status_code == 200
        assert response.get_json() == {'success': False, 'error': 'Ya existe una caja abierta'}

    def test_close_without_open(self, client, session):
        response = client.post('/api/cash/close', json={'closing_balance': 0})

        assert response.status_code == 200
        assert response.get_json() == {'success': False, 'error': 'No hay caja abierta'}


class TestCreditEndpoints:

    def test_credit_lifecycle(self, client, session):
        created = client.post('/api/credits', json={
            'type': 'receivable', 'description': 'Cuenta mesa 3', 'party': 'Pedro', 'total': 60000
        })
        assert created.status_code == 201
        credit_id = created.get_json()['id']

        payment = client.post(f'/api/credits/{credit_id}/payments', json={'amount': 60000, 'payment_method': 'cash'})
        assert payment.status_code == 201

        credit = client.get(f'/api/credits/{credit_id}').get_json()
        assert credit['status'] == 'closed'
        assert credit['balance'] == 0

        transactions = client.get('/api/transactions?type=income').get_json()
        assert [t['amount'] for t in transactions] == [60000]
        assert transactions[0]['reference_type'] == 'credit'

    def test_status_change(self, client, session):
        credit_id = client.post('/api/credits', json={
            'type': 'payable', 'description': 'Proveedor', 'party': 'Licores SA', 'total': 45000
        }).get_json()['id']

        closed = client.put(f'/api/credits/{credit_id}/status', json={'status': 'closed'}).get_json()
        assert closed['success'] is True
        assert closed['changes'] == 1
        assert isinstance(closed['transactionId'], int)

        again = client.put(f'/api/credits/{credit_id}/status', json={'status': 'closed'}).get_json()
        assert again == {'success': True, 'changes': 0}

        listed = client.get('/api/credits?type=payable&status=closed').get_json()
        assert [c['id'] for c in listed] == [credit_id]

    def test_invalid_payment(self, client, session):
        credit_id = client.post('/api/credits', json={
            'type': 'receivable', 'description': 'x', 'party': 'y', 'total': 1000
        }).get_json()['id']

        response = client.post(f'/api/credits/{credit_id}/payments', json={'amount': 0})

        assert response.status_code == 400
        assert response.get_json()['success'] is False

    def test_missing_credit(self, client, session):
        response = client.post('/api/credits/999/payments', json={'amount': 10})
        assert response.status_code == 404
