"""Products API: catalog management, search, resolution and client reference aliases."""


class TestAuthentication:
    
    def test_anonymous_request_is_rejected(self, client):
        response = client.get('/api/products/search?q=TM4')
        assert response.status_code == 401
        assert response.get_json()['code'] == 'AuthenticationRequired'
    
    def test_user_without_membership_is_rejected(self, login, tenant2_admin, tenant1):
        response = login(tenant2_admin, tenant1).get('/api/products')
        assert response.status_code == 403


class TestSearchAndResolve:
    
    def test_search_returns_tier_results(self, rep_client, make_product):
        make_product('WUNI0004', conversion='TM4')
        make_product('WUNI0007')
        
        response = rep_client.get('/api/products/search?q=wuni')
        
        assert response.status_code == 200
        assert [p['code'] for p in response.get_json()] == ['WUNI0004', 'WUNI0007']
    
    def test_search_miss_and_blank_are_empty(self, rep_client):
        assert rep_client.get('/api/products/search?q=nothing').get_json() == []
        assert rep_client.get('/api/products/search?q=').get_json() == []
    
    def test_resolve_reports_reciprocal_matches(self, rep_client, make_product):
        client_side = make_product('TM4')
        catalog_side = make_product('WUNI0004', conversion='TM4')
        
        data = rep_client.get('/api/products/resolve/WUNI0004').get_json()
        
        assert data['tier'] == 'exact'
        assert [p['id'] for p in data['products']] == [catalog_side.id, client_side.id]
        assert data['reciprocalIds'] == [client_side.id]
    
    def test_resolve_unknown_is_404(self, rep_client):
        response = rep_client.get('/api/products/resolve/NOPE')
        assert response.status_code == 404
        assert response.get_json()['code'] == 'ProductNotFound'


class TestConversions:
    
    def test_admin_saves_and_looks_up_alias(self, admin_client, make_product):
        product = make_product('WUNI0004')
        
        response = admin_client.post(f'/api/products/{product.id}/save-conversion', json={'clientRef': 'TM4'})
        assert response.status_code == 200
        assert response.get_json()['conversion'] == 'TM4'
        
        lookup = admin_client.get('/api/products/by-client-reference/TM4')
        assert lookup.status_code == 200
        assert lookup.get_json()['id'] == product.id
    
    def test_conflict_is_409_with_existing_product(self, admin_client, make_product):
        owner = make_product('WUNI0004', conversion='TM4')
        other = make_product('WUNI0009')
        
        response = admin_client.post(f'/api/products/{other.id}/save-conversion', json={'clientRef': 'TM4'})
        
        assert response.status_code == 409
        body = response.get_json()
        assert body['code'] == 'AliasConflict'
        assert body['existingProduct'] == {'id': owner.id, 'code': 'WUNI0004'}
    
    def test_missing_client_ref_is_400(self, admin_client, make_product):
        product = make_product('WUNI0004')
        response = admin_client.post(f'/api/products/{product.id}/save-conversion', json={})
        assert response.status_code == 400
    
    def test_unknown_alias_is_404(self, rep_client):
        assert rep_client.get('/api/products/by-client-reference/TM4').status_code == 404
    
    def test_representative_cannot_save_alias(self, rep_client, make_product):
        product = make_product('WUNI0004')
        response = rep_client.post(f'/api/products/{product.id}/save-conversion', json={'clientRef': 'TM4'})
        assert response.status_code == 403


class TestImport:
    
    def test_import_reports_row_errors(self, admin_client):
        response = admin_client.post('/api/products/import', json={'products': [
            {'code': 'N-1', 'name': 'New one', 'price': '9.90'},
            {'code': 'N-2', 'price': '1.00'},
        ]})
        
        assert response.status_code == 201
        body = response.get_json()
        assert body['imported'] == 1
        assert body['errors'][0]['row'] == 2
        assert admin_client.get('/api/products/resolve/N-1').status_code == 200
    
    def test_import_needs_a_list(self, admin_client):
        assert admin_client.post('/api/products/import', json={'products': 'x'}).status_code == 400


class TestClearConversion:
    
    def test_admin_clears_alias(self, admin_client, make_product):
        product = make_product('WUNI0004', conversion='TM4')
        
        response = admin_client.delete(f'/api/products/{product.id}/conversion')
        
        assert response.status_code == 200
        assert response.get_json()['conversion'] is None
        assert admin_client.get('/api/products/by-client-reference/TM4').status_code == 404
    
    def test_unknown_product_is_404(self, admin_client):
        assert admin_client.delete('/api/products/424242/conversion').status_code == 404
    
    def test_representative_cannot_clear_alias(self, rep_client, make_product):
        product = make_product('WUNI0004', conversion='TM4')
        
        assert rep_client.delete(f'/api/products/{product.id}/conversion').status_code == 403
        assert rep_client.get('/api/products/by-client-reference/TM4').get_json()['id'] == product.id


class TestCatalogManagement:
    
    def test_create_and_fetch(self, admin_client):
        response = admin_client.post('/api/products', json={
            'code': 'N-1', 'name': 'Novo', 'price': '4.5', 'brand': 'Acme', 'equivalentBrands': ['Beta'],
        })
        
        assert response.status_code == 201
        created = response.get_json()
        assert (created['price'], created['brand'], created['equivalentBrands']) == ('4.50', 'Acme', ['Beta'])
        assert admin_client.get(f"/api/products/{created['id']}").get_json()['code'] == 'N-1'
        assert admin_client.get('/api/products/by-code/N-1').get_json()['id'] == created['id']
    
    def test_create_rejects_bad_payloads(self, admin_client, make_product):
        make_product('TAKEN-1', conversion='TM4')
        
        duplicate = admin_client.post('/api/products', json={'code': 'TAKEN-1', 'name': 'Dup', 'price': '1'})
        assert duplicate.status_code == 409
        assert duplicate.get_json()['code'] == 'DuplicateProductCode'
        
        alias = admin_client.post('/api/products', json={'code': 'N-2', 'name': 'N', 'price': '1', 'conversion': 'TM4'})
        assert alias.status_code == 409
        assert alias.get_json()['code'] == 'AliasConflict'
        
        no_price = admin_client.post('/api/products', json={'code': 'N-3', 'name': 'N'})
        assert no_price.status_code == 400
        assert no_price.get_json()['reason'] == 'INVALID_PRICE'
        
        assert admin_client.get('/api/products/by-code/N-2').status_code == 404
    
    def test_unknown_product_is_404(self, rep_client):
        assert rep_client.get('/api/products/424242').status_code == 404
        assert rep_client.get('/api/products/by-code/NOPE').get_json()['code'] == 'ProductNotFound'
    
    def test_partial_update_sets_alias_through_registry(self, admin_client, make_product):
        product = make_product('WUNI0004', price='10.00')
        
        response = admin_client.put(f'/api/products/{product.id}', json={'price': '12.00', 'conversion': 'TM9'})
        
        assert response.status_code == 200
        body = response.get_json()
        assert (body['price'], body['conversion'], body['name']) == ('12.00', 'TM9', 'Product WUNI0004')
        assert admin_client.get('/api/products/by-client-reference/TM9').get_json()['id'] == product.id
        
        cleared = admin_client.put(f'/api/products/{product.id}', json={'conversion': ''})
        assert cleared.get_json()['conversion'] is None
    
    def test_alias_conflict_leaves_product_unchanged(self, admin_client, make_product):
        make_product('OTHER', conversion='TM4')
        product = make_product('WUNI0004', price='10.00')
        
        response = admin_client.put(f'/api/products/{product.id}', json={'price': '99.00', 'conversion': 'TM4'})
        
        assert response.status_code == 409
        assert response.get_json()['code'] == 'AliasConflict'
        unchanged = admin_client.get(f'/api/products/{product.id}').get_json()
        assert (unchanged['price'], unchanged['conversion']) == ('10.00', None)
    
    def test_code_change_to_taken_code_is_409(self, admin_client, make_product):
        make_product('A-1')
        product = make_product('B-1')
        
        response = admin_client.put(f'/api/products/{product.id}', json={'code': 'A-1'})
        
        assert response.status_code == 409
        assert response.get_json()['code'] == 'DuplicateProductCode'
    
    def test_delete(self, admin_client, make_product):
        product = make_product('GONE-1')
        product_id = product.id
        
        assert admin_client.delete(f'/api/products/{product_id}').status_code == 204
        assert admin_client.get(f'/api/products/{product_id}').status_code == 404
    
    def test_products_on_orders_cannot_be_deleted(self, admin_client, services, client_t1, rep_user, make_product):
        product = make_product('SOLD-1')
        services.engine.create_order(client_t1.id, rep_user.id, [{'productId': product.id, 'quantity': 1}])
        
        response = admin_client.delete(f'/api/products/{product.id}')
        
        assert response.status_code == 409
        assert response.get_json()['code'] == 'ProductInUse'
        assert admin_client.get(f'/api/products/{product.id}').status_code == 200
    
    def test_representative_cannot_manage_catalog(self, rep_client, make_product):
        product = make_product('A-1')
        
        assert rep_client.post('/api/products', json={'code': 'X', 'name': 'X', 'price': '1'}).status_code == 403
        assert rep_client.put(f'/api/products/{product.id}', json={'price': '1'}).status_code == 403
        assert rep_client.delete(f'/api/products/{product.id}').status_code == 403
