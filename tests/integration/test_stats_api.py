"""Statistics API and the metrics endpoint."""
import pytest
from prometheus_client import REGISTRY


@pytest.fixture
def sales(services, client_t1, rep_user, rep_user2, make_product):
    """Two confirmed orders (one per representative) and one quotation."""
    acme = make_product('S-1', price='10.00', brand='Acme')
    plain = make_product('S-2', price='5.00')
    
    first = services.engine.create_order(client_t1.id, rep_user.id, [
        {'productId': acme.id, 'quantity': 4}, {'productId': plain.id, 'quantity': 2}
    ])
    services.engine.update_status(first.id, 'CONFIRMED')
    second = services.engine.create_order(client_t1.id, rep_user2.id, [{'productId': plain.id, 'quantity': 6}])
    services.engine.update_status(second.id, 'CONFIRMED')
    services.engine.create_order(client_t1.id, rep_user.id, [{'productId': acme.id, 'quantity': 50}])
    return {'acme': acme, 'plain': plain}


class TestStatsEndpoints:
    
    def test_admin_dashboard(self, admin_client, sales):
        data = admin_client.get('/api/stats/dashboard').get_json()
        
        assert data['orders']['total'] == 3
        assert data['orders']['confirmed'] == 2
        assert data['products'] == {'total': 2, 'active': 2}
    
    def test_representative_sees_own_numbers(self, rep_client, sales):
        data = rep_client.get('/api/stats/dashboard').get_json()
        
        assert (data['orders']['total'], data['orders']['confirmed']) == (2, 1)
        rows = rep_client.get('/api/stats/sales-by-representative').get_json()
        assert [(r['name'], r['totalPieces']) for r in rows] == [('Rita Rep', 6)]
    
    def test_sales_by_brand(self, admin_client, sales):
        rows = admin_client.get('/api/stats/sales-by-brand').get_json()
        
        assert [(r['brand'], r['totalPieces'], r['totalValue']) for r in rows] == [
            ('No Brand', 8, '40.00'), ('Acme', 4, '40.00')
        ]
    
    def test_top_selling_products_limit(self, admin_client, sales):
        rows = admin_client.get('/api/stats/top-selling-products?limit=1').get_json()
        
        assert [(r['id'], r['totalPieces']) for r in rows] == [(sales['plain'].id, 8)]
        assert admin_client.get('/api/stats/top-selling-products?limit=0').status_code == 400
    
    def test_admin_can_filter_by_representative(self, admin_client, sales, rep_user2):
        rows = admin_client.get(f'/api/stats/top-selling-products?representativeId={rep_user2.id}').get_json()
        
        assert [(r['id'], r['totalPieces']) for r in rows] == [(sales['plain'].id, 6)]


class TestMetrics:
    
    def test_metrics_exposes_resolution_counter(self, rep_client, make_product):
        make_product('M-1')
        rep_client.get('/api/products/resolve/M-1')
        
        response = rep_client.get('/metrics')
        
        assert response.status_code == 200
        assert b'product_resolutions_total' in response.data
    
    def test_counters_increase_per_tier_and_operation(self, services, client_t1, rep_user, make_product):
        product = make_product('M-2')
        exact = {'tier': 'exact'}
        created = {'operation': 'create'}
        resolved_before = REGISTRY.get_sample_value('product_resolutions_total', exact) or 0
        created_before = REGISTRY.get_sample_value('order_recalculations_total', created) or 0
        
        services.resolver.resolve('M-2')
        services.engine.create_order(client_t1.id, rep_user.id, [{'productId': product.id, 'quantity': 1}])
        
        assert REGISTRY.get_sample_value('product_resolutions_total', exact) == resolved_before + 1
        assert REGISTRY.get_sample_value('order_recalculations_total', created) == created_before + 1
