"""Discount tiers API."""


class TestDiscountsApi:
    
    def test_list_is_open_to_representatives(self, rep_client, make_discount):
        make_discount('3*5', '14.26', '6.00')
        make_discount('2*5', '9.75', '7.00')
        
        rows = rep_client.get('/api/discounts').get_json()
        
        assert [r['name'] for r in rows] == ['2*5', '3*5']
        assert rows[0]['percentage'] == '9.75'
    
    def test_admin_manages_tiers(self, admin_client):
        created = admin_client.post('/api/discounts', json={'name': '4*5', 'percentage': '18.54', 'commission': '5'})
        assert created.status_code == 201
        discount_id = created.get_json()['id']
        
        updated = admin_client.put(f'/api/discounts/{discount_id}', json={'commission': '4.5'})
        assert updated.get_json()['commission'] == '4.50'
        
        assert admin_client.delete(f'/api/discounts/{discount_id}').status_code == 204
        assert admin_client.get('/api/discounts').get_json() == []
    
    def test_representative_cannot_create(self, rep_client):
        response = rep_client.post('/api/discounts', json={'name': 'x', 'percentage': '1', 'commission': '1'})
        assert response.status_code == 403
    
    def test_tier_in_use_is_409(self, admin_client, services, make_discount, make_product, client_t1, rep_user):
        tier = make_discount('2*5', '9.75', '7.00')
        product = make_product('A-1')
        services.engine.create_order(client_t1.id, rep_user.id, [{'productId': product.id, 'quantity': 1}],
                                     discount_id=tier.id)
        
        response = admin_client.delete(f'/api/discounts/{tier.id}')
        
        assert response.status_code == 409
        assert response.get_json()['code'] == 'DiscountInUse'
