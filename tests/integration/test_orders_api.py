"""Orders API: pricing flows through HTTP, representative visibility."""
import pytest


@pytest.fixture
def catalog(make_product):
    return {
        'a': make_product('A-1', price='10.00'),
        'b': make_product('B-1', price='2.50', conversion='TM4'),
    }


def create(client, client_t1, items, **extra):
    payload = {'clientId': client_t1.id, 'items': items}
    payload.update(extra)
    return client.post('/api/orders', json=payload)


class TestOrderLifecycle:
    
    def test_create_and_read(self, rep_client, client_t1, catalog, rep_user):
        response = create(rep_client, client_t1, [{'productId': catalog['a'].id, 'quantity': 3}])
        
        assert response.status_code == 201
        order = response.get_json()
        assert order['subtotal'] == '30.00'
        assert order['total'] == '30.00'
        assert order['status'] == 'QUOTATION'
        assert order['representativeId'] == rep_user.id
        assert order['code'].startswith('ORD-')
        
        fetched = rep_client.get(f"/api/orders/{order['id']}").get_json()
        assert [i['quantity'] for i in fetched['items']] == [3]
    
    def test_discount_example(self, rep_client, client_t1, catalog, make_discount):
        tier = make_discount('2*5', '9.75', '7.00')
        
        order = create(rep_client, client_t1, [{'productId': catalog['a'].id, 'quantity': 10}],
                       discountId=tier.id).get_json()
        
        assert (order['subtotal'], order['discountAmount'], order['total']) == ('100.00', '9.75', '90.25')
    
    def test_invalid_rows_are_400_with_details(self, rep_client, client_t1, catalog):
        response = create(rep_client, client_t1, [
            {'productId': catalog['a'].id, 'quantity': 1},
            {'productId': catalog['a'].id, 'quantity': -2},
        ])
        
        assert response.status_code == 400
        body = response.get_json()
        assert body['code'] == 'OrderValidationError'
        assert body['rejected'] == [{'row': 2, 'reason': body['rejected'][0]['reason'], 'code': 'InvalidQuantity'}]
        assert rep_client.get('/api/orders').get_json() == []
    
    def test_item_add_remove_and_totals(self, rep_client, client_t1, catalog):
        order_id = create(rep_client, client_t1, [{'productId': catalog['a'].id, 'quantity': 1}]).get_json()['id']
        
        added = rep_client.post(f'/api/orders/{order_id}/items', json={'reference': 'TM4', 'quantity': 4})
        assert added.status_code == 201
        assert added.get_json()['item']['productId'] == catalog['b'].id
        assert added.get_json()['totals']['subtotal'] == '20.00'
        
        item_id = added.get_json()['item']['id']
        removed = rep_client.delete(f'/api/orders/items/{item_id}')
        assert removed.status_code == 200
        assert removed.get_json()['totals']['subtotal'] == '10.00'
        
        assert rep_client.get(f'/api/orders/{order_id}/totals').get_json()['total'] == '10.00'
    
    def test_replace_items(self, rep_client, client_t1, catalog):
        order_id = create(rep_client, client_t1, [{'productId': catalog['a'].id, 'quantity': 1}]).get_json()['id']
        rows = [{'productId': catalog['b'].id, 'quantity': 2}, {'productId': 404, 'quantity': 1}]
        
        strict = rep_client.put(f'/api/orders/{order_id}/items', json={'items': rows, 'strict': True})
        assert strict.status_code == 422
        assert strict.get_json()['applied'] is False
        assert rep_client.get(f'/api/orders/{order_id}/totals').get_json()['subtotal'] == '10.00'
        
        lenient = rep_client.put(f'/api/orders/{order_id}/items', json={'items': rows})
        assert lenient.status_code == 200
        body = lenient.get_json()
        assert [r['row'] for r in body['rejected']] == [2]
        assert body['totals']['subtotal'] == '5.00'
    
    def test_set_discount(self, rep_client, client_t1, catalog):
        order_id = create(rep_client, client_t1, [{'productId': catalog['a'].id, 'quantity': 10}]).get_json()['id']
        
        response = rep_client.put(f'/api/orders/{order_id}/discount', json={'percentage': '9.75'})
        
        assert response.get_json() == {'subtotal': '100.00', 'discountAmount': '9.75', 'total': '90.25'}
    
    def test_confirmed_order_rejects_changes(self, rep_client, client_t1, catalog):
        order_id = create(rep_client, client_t1, [{'productId': catalog['a'].id, 'quantity': 1}]).get_json()['id']
        
        confirmed = rep_client.put(f'/api/orders/{order_id}/status', json={'status': 'CONFIRMED'})
        assert confirmed.get_json()['status'] == 'CONFIRMED'
        
        response = rep_client.post(f'/api/orders/{order_id}/items', json={'productId': catalog['b'].id, 'quantity': 1})
        assert response.status_code == 409
        assert response.get_json()['code'] == 'InvalidOrderState'
    
    def test_update_header(self, rep_client, client_t1, catalog):
        order_id = create(rep_client, client_t1, [{'productId': catalog['a'].id, 'quantity': 1}]).get_json()['id']
        
        response = rep_client.put(f'/api/orders/{order_id}', json={'notes': 'Deliver Monday', 'paymentTerms': '30/60'})
        
        assert response.status_code == 200
        body = response.get_json()
        assert (body['notes'], body['paymentTerms'], body['total']) == ('Deliver Monday', '30/60', '10.00')
        
        unknown = rep_client.put(f'/api/orders/{order_id}', json={'clientId': 424242})
        assert unknown.status_code == 404
        assert unknown.get_json()['code'] == 'ClientNotFound'
        
        rep_client.put(f'/api/orders/{order_id}/status', json={'status': 'CONFIRMED'})
        locked = rep_client.put(f'/api/orders/{order_id}', json={'notes': 'late change'})
        assert locked.status_code == 409
        assert locked.get_json()['code'] == 'InvalidOrderState'
        assert rep_client.get(f'/api/orders/{order_id}').get_json()['notes'] == 'Deliver Monday'
    
    def test_delete(self, rep_client, client_t1, catalog):
        order_id = create(rep_client, client_t1, [{'productId': catalog['a'].id, 'quantity': 1}]).get_json()['id']
        
        assert rep_client.delete(f'/api/orders/{order_id}').status_code == 204
        assert rep_client.get(f'/api/orders/{order_id}').status_code == 404


class TestVisibility:
    
    def test_representatives_only_see_their_orders(self, login, rep_client, admin_client, rep_user2, tenant1,
                                                   client_t1, catalog):
        order_id = create(rep_client, client_t1, [{'productId': catalog['a'].id, 'quantity': 1}]).get_json()['id']
        other_rep = login(rep_user2, tenant1)
        
        assert other_rep.get(f'/api/orders/{order_id}').status_code == 404
        assert other_rep.get('/api/orders').get_json() == []
        assert other_rep.delete(f'/api/orders/{order_id}').status_code == 404
        assert admin_client.get(f'/api/orders/{order_id}').status_code == 200
        assert [o['id'] for o in admin_client.get('/api/orders').get_json()] == [order_id]
    
    def test_admin_creates_for_a_representative(self, admin_client, client_t1, catalog, rep_user):
        order = create(admin_client, client_t1, [{'productId': catalog['a'].id, 'quantity': 1}],
                       representativeId=rep_user.id).get_json()
        
        assert order['representativeId'] == rep_user.id
    
    def test_admin_cannot_assign_a_non_member(self, admin_client, client_t1, catalog, tenant2_admin):
        for rep_id in (tenant2_admin.id, 999999):
            response = create(admin_client, client_t1, [{'productId': catalog['a'].id, 'quantity': 1}],
                              representativeId=rep_id)
            
            assert response.status_code == 404
            assert response.get_json()['code'] == 'RepresentativeNotFound'
        
        assert admin_client.get('/api/orders').get_json() == []
