"""Middleware for authentication and tenant context (JSON API)."""
from functools import wraps
from flask import session, g, current_app
from orderdesk.database import get_session
from orderdesk.exceptions import SaasError, UnauthorizedError
from orderdesk.models import AppUser, UserTenant, Tenant, UserRole


class AuthenticationRequired(SaasError):
    def __init__(self, message='Authentication required'):
        super().__init__(message, 401)


def load_user_and_tenant():
    """
    Load current user and tenant into g (Flask's per-request global).
    
    Sets g.user, g.user_id, g.tenant_id and g.user_role when the session
    carries a valid user with an active membership in the selected tenant.
    """
    g.user = None
    g.user_id = None
    g.tenant_id = None
    g.user_role = None
    
    user_id = session.get('user_id')
    if not user_id:
        return
    
    db_session = get_session()
    user = db_session.query(AppUser).filter_by(id=user_id, active=True).first()
    if not user:
        return
    g.user = user
    g.user_id = user.id
    
    tenant_id = session.get('tenant_id')
    if not tenant_id:
        return
    
    # Verify user has access to this tenant
    user_tenant = db_session.query(UserTenant).filter_by(
        user_id=user.id,
        tenant_id=tenant_id,
        active=True
    ).first()
    tenant = db_session.query(Tenant).filter_by(id=tenant_id, active=True).first() if user_tenant else None
    
    if user_tenant and tenant:
        g.tenant_id = tenant.id
        g.user_role = user_tenant.role
    else:
        current_app.logger.info(f"User {user.id} has no active access to tenant {tenant_id}")
        session.pop('tenant_id', None)


def require_login(f):
    """Decorator: 401 unless a user is loaded."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user') is None:
            raise AuthenticationRequired()
        return f(*args, **kwargs)
    return decorated_function


def require_tenant(f):
    """
    Decorator: Require tenant to be selected.
    
    Must be used AFTER require_login.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('tenant_id') is None:
            raise UnauthorizedError('No tenant selected')
        return f(*args, **kwargs)
    return decorated_function


def require_role(min_role=UserRole.REPRESENTATIVE.value):
    """
    Decorator: Require minimum role for tenant.
    
    Roles hierarchy: ADMIN > REPRESENTATIVE
    Must be used AFTER require_login and require_tenant.
    """
    role_hierarchy = {UserRole.ADMIN.value: 2, UserRole.REPRESENTATIVE.value: 1}
    
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if g.get('user') is None or g.get('tenant_id') is None:
                raise UnauthorizedError('Access denied')
            
            user_role_level = role_hierarchy.get(g.get('user_role'), 0)
            required_level = role_hierarchy.get(min_role, 1)
            if user_role_level < required_level:
                raise UnauthorizedError(f'{min_role} role required')
            
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def is_admin() -> bool:
    return g.get('user_role') == UserRole.ADMIN.value


def representative_scope():
    """None for admins (see everything), the user's own id for representatives."""
    return None if is_admin() else g.user.id


def current_services():
    """Per-request service bundle for the current tenant."""
    if 'services' not in g:
        from orderdesk.services import build_services
        from orderdesk.services.cache_service import get_cache
        g.services = build_services(get_session(), g.tenant_id, current_app.config, get_cache())
    return g.services
