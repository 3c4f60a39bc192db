import pytest

from orderdesk.exceptions import ProductNotFound, ValidationError
from orderdesk.repositories import ProductRepository
from orderdesk.services.product_resolver import ProductResolver, TIER_EXACT, TIER_PREFIX, TIER_CONTAINS


class TestExactTier:
    
    def test_exact_code_is_sole_result(self, services, make_product):
        target = make_product('WUNI0004', name='Universal joint')
        make_product('WUNI0005', name='Universal joint XL')
        
        result = services.resolver.resolve('WUNI0004')
        
        assert result.tier == TIER_EXACT
        assert [p.id for p in result.products] == [target.id]
        assert result.first.id == target.id
    
    def test_exact_match_is_case_sensitive(self, services, make_product):
        product = make_product('ABC-1')
        
        result = services.resolver.resolve('abc-1')
        
        assert result.tier == TIER_PREFIX
        assert [p.id for p in result.products] == [product.id]
    
    def test_barcode_and_name_match_exactly(self, services, make_product):
        by_barcode = make_product('P-1', barcode='7891234567890')
        by_name = make_product('P-2', name='Brake pad')
        
        assert services.resolver.resolve('7891234567890').first.id == by_barcode.id
        assert services.resolver.resolve('Brake pad').first.id == by_name.id
    
    def test_several_exact_matches_are_ordered_by_id(self, services, make_product):
        first = make_product('TM4')
        second = make_product('WUNI0004', conversion='TM4')
        
        result = services.resolver.resolve('TM4')
        
        assert result.tier == TIER_EXACT
        assert [p.id for p in result.products] == [first.id, second.id]
        assert result.reciprocal_ids == ()


class TestReciprocalTier:
    
    def test_alias_target_comes_back_with_catalog_code(self, services, make_product):
        client_side = make_product('TM4', name='TM4 joint')
        catalog_side = make_product('WUNI0004', conversion='TM4')
        
        result = services.resolver.resolve('WUNI0004')
        
        assert result.tier == TIER_EXACT
        assert [p.id for p in result.products] == [catalog_side.id, client_side.id]
        assert result.reciprocal_ids == (client_side.id,)
        assert result.first.id == catalog_side.id
    
    def test_backward_match_on_name(self, services, make_product):
        base = make_product('X-100', name='Gear X')
        aliased = make_product('Y-200', conversion='Gear X')
        
        result = services.resolver.resolve('X-100')
        
        assert [p.id for p in result.products] == [base.id, aliased.id]
        assert result.reciprocal_ids == (aliased.id,)
    
    def test_no_duplicates_in_merged_result(self, services, make_product):
        a = make_product('A-1', name='A one', conversion='B-1')
        b = make_product('B-1', name='B one', conversion='A-1')
        
        result = services.resolver.resolve('A-1')
        
        # B-1 is found by exact (conversion) and reciprocal alike
        ids = [p.id for p in result.products]
        assert sorted(ids) == sorted({a.id, b.id})
        assert len(ids) == len(set(ids))


class TestFuzzyTiers:
    
    def test_prefix_is_case_insensitive(self, services, make_product):
        p1 = make_product('WUNI0004')
        p2 = make_product('WUNI0007')
        make_product('XUNI0001')
        
        result = services.resolver.resolve('wuni')
        
        assert result.tier == TIER_PREFIX
        assert [p.id for p in result.products] == [p1.id, p2.id]
    
    def test_contains_searches_descriptive_fields(self, services, make_product):
        by_brand = make_product('K-1', brand='Acme Parts')
        by_category = make_product('K-2', category='Gears for acme machines')
        make_product('K-3', brand='Other')
        
        result = services.resolver.resolve('cme')
        
        assert result.tier == TIER_CONTAINS
        assert [p.id for p in result.products] == [by_brand.id, by_category.id]
    
    def test_like_wildcards_are_literal(self, services, make_product):
        make_product('PLAIN-1')
        
        assert services.resolver.search('%') == []
        assert services.resolver.search('_') == []
    
    def test_tier_limit_bounds_results(self, session, tenant1, make_product):
        products = [make_product(f'LIM-{i}') for i in range(5)]
        resolver = ProductResolver(ProductRepository(session, tenant1.id), tier_limit=3)
        
        result = resolver.resolve('lim')
        
        assert [p.id for p in result.products] == [p.id for p in products[:3]]


class TestMisses:
    
    def test_unknown_reference_raises(self, services, make_product):
        make_product('WUNI0004')
        
        with pytest.raises(ProductNotFound):
            services.resolver.resolve('NO-SUCH-THING')
        assert services.resolver.search('NO-SUCH-THING') == []
    
    def test_blank_reference_is_invalid(self, services):
        with pytest.raises(ValidationError):
            services.resolver.resolve('   ')
    
    def test_other_tenant_products_are_invisible(self, services, make_product, tenant2):
        make_product('SHARED-1', tenant=tenant2)
        
        with pytest.raises(ProductNotFound):
            services.resolver.resolve('SHARED-1')
    
    def test_resolve_one_skips_inactive_products(self, services, make_product):
        make_product('OLD-1', active=False)
        
        assert services.resolver.resolve('OLD-1').first.code == 'OLD-1'
        with pytest.raises(ProductNotFound):
            services.resolver.resolve_one('OLD-1')
