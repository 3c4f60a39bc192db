"""Discount tiers API."""
from flask import Blueprint, jsonify

from orderdesk.blueprints import json_body
from orderdesk.middleware import require_login, require_tenant, require_role, current_services
from orderdesk.models import UserRole

discounts_bp = Blueprint('discounts', __name__, url_prefix='/api/discounts')


@discounts_bp.route('', methods=['GET'])
@require_login
@require_tenant
def list_discounts():
    return jsonify([d.to_dict() for d in current_services().discounts.list_discounts()])


@discounts_bp.route('', methods=['POST'])
@require_login
@require_tenant
@require_role(UserRole.ADMIN.value)
def create_discount():
    data = json_body()
    discount = current_services().discounts.create_discount(
        data.get('name'), data.get('percentage'), data.get('commission')
    )
    return jsonify(discount.to_dict()), 201


@discounts_bp.route('/<int:discount_id>', methods=['PUT'])
@require_login
@require_tenant
@require_role(UserRole.ADMIN.value)
def update_discount(discount_id):
    data = json_body()
    discount = current_services().discounts.update_discount(
        discount_id,
        name=data.get('name'),
        percentage=data.get('percentage'),
        commission=data.get('commission'),
    )
    return jsonify(discount.to_dict())


@discounts_bp.route('/<int:discount_id>', methods=['DELETE'])
@require_login
@require_tenant
@require_role(UserRole.ADMIN.value)
def delete_discount(discount_id):
    current_services().discounts.delete_discount(discount_id)
    return '', 204
