"""Products API - catalog management, reference resolution and client aliases."""
import logging

from flask import Blueprint, jsonify, request

from orderdesk.blueprints import json_body
from orderdesk.exceptions import ProductNotFound, ValidationError
from orderdesk.middleware import require_login, require_tenant, require_role, current_services
from orderdesk.models import UserRole

logger = logging.getLogger(__name__)

products_bp = Blueprint('products', __name__, url_prefix='/api/products')


@products_bp.route('', methods=['GET'])
@require_login
@require_tenant
def list_products():
    include_inactive = request.args.get('includeInactive', 'true').lower() != 'false'
    products = current_services().resolver.products.list_all(include_inactive=include_inactive)
    return jsonify([p.to_dict() for p in products])


@products_bp.route('', methods=['POST'])
@require_login
@require_tenant
@require_role(UserRole.ADMIN.value)
def create_product():
    product = current_services().products.create_product(json_body())
    return jsonify(product.to_dict()), 201


@products_bp.route('/<int:product_id>', methods=['GET'])
@require_login
@require_tenant
def get_product(product_id):
    return jsonify(current_services().products.get_product(product_id).to_dict())


@products_bp.route('/<int:product_id>', methods=['PUT'])
@require_login
@require_tenant
@require_role(UserRole.ADMIN.value)
def update_product(product_id):
    """Partial update; `conversion` goes through the alias registry."""
    product = current_services().products.update_product(product_id, json_body())
    return jsonify(product.to_dict())


@products_bp.route('/<int:product_id>', methods=['DELETE'])
@require_login
@require_tenant
@require_role(UserRole.ADMIN.value)
def delete_product(product_id):
    current_services().products.delete_product(product_id)
    return '', 204


@products_bp.route('/by-code/<path:code>', methods=['GET'])
@require_login
@require_tenant
def get_by_code(code):
    return jsonify(current_services().products.get_by_code(code).to_dict())


@products_bp.route('/search', methods=['GET'])
@require_login
@require_tenant
def search_products():
    """Tiered search; an unknown reference yields an empty list, not a 404."""
    query = (request.args.get('q') or '').strip()
    if not query:
        return jsonify([])
    products = current_services().resolver.search(query)
    return jsonify([p.to_dict() for p in products])


@products_bp.route('/resolve/<path:reference>', methods=['GET'])
@require_login
@require_tenant
def resolve_reference(reference):
    """Full resolution result (tier, products, reciprocal ids); 404 when nothing matches."""
    result = current_services().resolver.resolve(reference)
    return jsonify(result.to_dict())


@products_bp.route('/by-client-reference/<path:client_ref>', methods=['GET'])
@require_login
@require_tenant
def get_by_client_reference(client_ref):
    product = current_services().registry.resolve_alias(client_ref)
    if not product:
        raise ProductNotFound(client_ref, message=f'No product associated with reference "{client_ref}"')
    return jsonify(product.to_dict())


@products_bp.route('/<int:product_id>/save-conversion', methods=['POST'])
@require_login
@require_tenant
@require_role(UserRole.ADMIN.value)
def save_conversion(product_id):
    data = json_body()
    client_ref = data.get('clientRef')
    if not isinstance(client_ref, str):
        raise ValidationError('clientRef is required')
    product = current_services().registry.save_alias(product_id, client_ref)
    return jsonify(product.to_dict())


@products_bp.route('/<int:product_id>/conversion', methods=['DELETE'])
@require_login
@require_tenant
@require_role(UserRole.ADMIN.value)
def clear_conversion(product_id):
    product = current_services().registry.clear_alias(product_id)
    return jsonify(product.to_dict())


@products_bp.route('/import', methods=['POST'])
@require_login
@require_tenant
@require_role(UserRole.ADMIN.value)
def import_products():
    data = request.get_json(silent=True)
    rows = data.get('products') if isinstance(data, dict) else data
    if not isinstance(rows, list):
        raise ValidationError('Expected a list of products')
    result = current_services().catalog.import_products(rows)
    status = 201 if result.imported else 200
    return jsonify(result.to_dict()), status
