"""Statistics API. Representatives only ever see their own numbers."""
from flask import Blueprint, jsonify, request, current_app

from orderdesk.exceptions import ValidationError
from orderdesk.middleware import require_login, require_tenant, current_services, is_admin, representative_scope

stats_bp = Blueprint('stats', __name__, url_prefix='/api/stats')


def _scope():
    """Admins may narrow to one representative with ?representativeId=."""
    if is_admin():
        return request.args.get('representativeId', type=int)
    return representative_scope()


@stats_bp.route('/dashboard', methods=['GET'])
@require_login
@require_tenant
def dashboard():
    return jsonify(current_services().stats.dashboard(_scope()).to_dict())


@stats_bp.route('/sales-by-representative', methods=['GET'])
@require_login
@require_tenant
def sales_by_representative():
    rows = current_services().stats.sales_by_representative(_scope())
    return jsonify([r.to_dict() for r in rows])


@stats_bp.route('/sales-by-brand', methods=['GET'])
@require_login
@require_tenant
def sales_by_brand():
    rows = current_services().stats.sales_by_brand(_scope())
    return jsonify([r.to_dict() for r in rows])


@stats_bp.route('/top-selling-products', methods=['GET'])
@require_login
@require_tenant
def top_selling_products():
    limit = request.args.get('limit', default=current_app.config.get('STATS_TOP_PRODUCTS_LIMIT', 20), type=int)
    if limit is None or limit < 1:
        raise ValidationError('limit must be a positive integer')
    rows = current_services().stats.top_selling_products(limit=limit, representative_id=_scope())
    return jsonify([r.to_dict() for r in rows])
