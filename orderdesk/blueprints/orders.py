"""Orders API - Multi-Tenant. Every mutation goes through the pricing engine."""
import logging

from flask import Blueprint, jsonify, request, g

from orderdesk.blueprints import json_body
from orderdesk.exceptions import OrderNotFound, ItemNotFound, ValidationError
from orderdesk.middleware import require_login, require_tenant, current_services, is_admin, representative_scope

logger = logging.getLogger(__name__)

orders_bp = Blueprint('orders', __name__, url_prefix='/api/orders')


def _visible_order(order_id):
    """The order if the caller may see it; other representatives' orders are 404."""
    order = current_services().orders.find_by_id(order_id)
    if not order:
        raise OrderNotFound(order_id)
    if not is_admin() and order.representative_id != g.user.id:
        raise OrderNotFound(order_id)
    return order


def _order_payload(order):
    data = order.to_dict()
    data['items'] = [item.to_dict() for item in current_services().orders.list_items(order.id)]
    return data


def _item_rows(data):
    items = data.get('items')
    if not isinstance(items, list):
        raise ValidationError('items must be a list')
    return items


@orders_bp.route('', methods=['GET'])
@require_login
@require_tenant
def list_orders():
    rep_id = representative_scope()
    if is_admin():
        rep_id = request.args.get('representativeId', type=int)
    orders = current_services().orders.list_orders(
        representative_id=rep_id,
        client_id=request.args.get('clientId', type=int),
        status=(request.args.get('status') or '').upper() or None,
    )
    return jsonify([o.to_dict() for o in orders])


@orders_bp.route('', methods=['POST'])
@require_login
@require_tenant
def create_order():
    data = json_body()
    representative_id = g.user.id
    if is_admin() and data.get('representativeId'):
        representative_id = data['representativeId']
    if not data.get('clientId'):
        raise ValidationError('clientId is required')
    
    order = current_services().engine.create_order(
        client_id=data['clientId'],
        representative_id=representative_id,
        items=_item_rows(data),
        discount_id=data.get('discountId'),
        discount_percentage=data.get('discountPercentage'),
        notes=data.get('notes'),
        payment_terms=data.get('paymentTerms'),
        status=data.get('status') or 'QUOTATION',
    )
    return jsonify(_order_payload(order)), 201


@orders_bp.route('/<int:order_id>', methods=['GET'])
@require_login
@require_tenant
def get_order(order_id):
    return jsonify(_order_payload(_visible_order(order_id)))


@orders_bp.route('/<int:order_id>', methods=['PUT'])
@require_login
@require_tenant
def update_order(order_id):
    _visible_order(order_id)
    data = json_body()
    fields = {}
    if 'notes' in data:
        fields['notes'] = data['notes']
    if 'paymentTerms' in data:
        fields['payment_terms'] = data['paymentTerms']
    if 'clientId' in data:
        fields['client_id'] = data['clientId']
    order = current_services().engine.update_details(order_id, **fields)
    return jsonify(_order_payload(order))


@orders_bp.route('/<int:order_id>', methods=['DELETE'])
@require_login
@require_tenant
def delete_order(order_id):
    _visible_order(order_id)
    current_services().engine.delete_order(order_id)
    return '', 204


@orders_bp.route('/<int:order_id>/items', methods=['GET'])
@require_login
@require_tenant
def list_items(order_id):
    _visible_order(order_id)
    items = current_services().orders.list_items(order_id)
    return jsonify([item.to_dict() for item in items])


@orders_bp.route('/<int:order_id>/items', methods=['POST'])
@require_login
@require_tenant
def add_item(order_id):
    _visible_order(order_id)
    data = json_body()
    services = current_services()
    
    product_id = data.get('productId')
    if product_id in (None, '') and data.get('reference'):
        product_id = services.resolver.resolve_one(data['reference']).id
    
    item = services.engine.add_item(
        order_id,
        product_id=product_id,
        quantity=data.get('quantity'),
        unit_price=data.get('unitPrice'),
        discount_id=data.get('discountId'),
    )
    return jsonify({
        'item': item.to_dict(),
        'totals': services.engine.get_order_totals(order_id).to_dict(),
    }), 201


@orders_bp.route('/<int:order_id>/items', methods=['PUT'])
@require_login
@require_tenant
def replace_items(order_id):
    """Bulk replace; `strict: true` refuses the whole batch on any bad row."""
    _visible_order(order_id)
    data = json_body()
    result = current_services().engine.replace_items(
        order_id, _item_rows(data), strict=bool(data.get('strict', False))
    )
    return jsonify(result.to_dict()), (200 if result.applied else 422)


@orders_bp.route('/items/<int:item_id>', methods=['DELETE'])
@require_login
@require_tenant
def remove_item(item_id):
    services = current_services()
    item = services.orders.find_item(item_id)
    if not item:
        raise ItemNotFound(item_id)
    try:
        _visible_order(item.order_id)
    except OrderNotFound:
        raise ItemNotFound(item_id)
    totals = services.engine.remove_item(item_id)
    return jsonify({'totals': totals.to_dict()})


@orders_bp.route('/<int:order_id>/totals', methods=['GET'])
@require_login
@require_tenant
def get_totals(order_id):
    _visible_order(order_id)
    return jsonify(current_services().engine.get_order_totals(order_id).to_dict())


@orders_bp.route('/<int:order_id>/status', methods=['PUT'])
@require_login
@require_tenant
def update_status(order_id):
    _visible_order(order_id)
    data = json_body()
    order = current_services().engine.update_status(order_id, data.get('status'))
    return jsonify(order.to_dict())


@orders_bp.route('/<int:order_id>/discount', methods=['PUT'])
@require_login
@require_tenant
def set_discount(order_id):
    _visible_order(order_id)
    data = json_body()
    totals = current_services().engine.set_order_discount(
        order_id,
        discount_id=data.get('discountId'),
        percentage=data.get('percentage', data.get('discountPercentage')),
    )
    return jsonify(totals.to_dict())
