import uuid
from decimal import Decimal

import pytest

from orderdesk import create_app
from orderdesk.database import get_session, create_tables, drop_tables
from orderdesk.models import (
    Tenant, AppUser, UserTenant, UserRole, Client, Product, Discount
)
from orderdesk.services import build_services


def persist(session, obj):
    """Commit, reload and detach so the object stays readable after later commits and requests."""
    session.add(obj)
    session.commit()
    session.refresh(obj)
    session.expunge(obj)
    return obj


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing (in-memory SQLite, cache off)."""
    return create_app('config.TestConfig')


@pytest.fixture(scope='function', autouse=True)
def database(app):
    """Fresh schema for every test."""
    create_tables()
    yield
    get_session().remove()
    drop_tables()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session():
    """Database session for testing."""
    session = get_session()
    yield session
    session.rollback()


@pytest.fixture(scope='function')
def tenant1(session):
    """Create first test tenant."""
    suffix = str(uuid.uuid4())[:8]
    return persist(session, Tenant(slug=f'tenant-1-{suffix}', name=f'Tenant 1 {suffix}', active=True))


@pytest.fixture(scope='function')
def tenant2(session):
    """Create second test tenant for isolation tests."""
    suffix = str(uuid.uuid4())[:8]
    return persist(session, Tenant(slug=f'tenant-2-{suffix}', name=f'Tenant 2 {suffix}', active=True))


def _member(session, tenant, role, full_name):
    suffix = str(uuid.uuid4())[:8]
    user = persist(session, AppUser(email=f'{suffix}@test.com', full_name=full_name, active=True))
    persist(session, UserTenant(user_id=user.id, tenant_id=tenant.id, role=role.value, active=True))
    return user


@pytest.fixture(scope='function')
def admin_user(session, tenant1):
    return _member(session, tenant1, UserRole.ADMIN, 'Ada Admin')


@pytest.fixture(scope='function')
def rep_user(session, tenant1):
    return _member(session, tenant1, UserRole.REPRESENTATIVE, 'Rita Rep')


@pytest.fixture(scope='function')
def rep_user2(session, tenant1):
    return _member(session, tenant1, UserRole.REPRESENTATIVE, 'Rui Rep')


@pytest.fixture(scope='function')
def tenant2_admin(session, tenant2):
    return _member(session, tenant2, UserRole.ADMIN, 'Other Admin')


@pytest.fixture(scope='function')
def client_t1(session, tenant1, rep_user):
    """Customer of tenant1 served by rep_user."""
    return persist(session, Client(
        tenant_id=tenant1.id, name='Loja Central', code='C-001', representative_id=rep_user.id
    ))


@pytest.fixture(scope='function')
def make_product(session, tenant1):
    """Factory: make_product('WUNI0004', price='10.00', brand='Acme', ...)."""
    def _make(code, name=None, price='10.00', tenant=None, **fields):
        return persist(session, Product(
            tenant_id=(tenant or tenant1).id,
            code=code,
            name=name or f'Product {code}',
            price=Decimal(price),
            **fields
        ))
    return _make


@pytest.fixture(scope='function')
def make_discount(session, tenant1):
    def _make(name='2*5', percentage='9.75', commission='7.00', tenant=None):
        return persist(session, Discount(
            tenant_id=(tenant or tenant1).id,
            name=name,
            percentage=Decimal(percentage),
            commission=Decimal(commission),
        ))
    return _make


@pytest.fixture(scope='function')
def services(session, tenant1):
    """Service bundle for tenant1 with default settings."""
    return build_services(session, tenant1.id)


@pytest.fixture(scope='function')
def login(app):
    """Factory: test client whose session carries (user, tenant)."""
    def _login(user, tenant):
        client = app.test_client()
        with client.session_transaction() as sess:
            sess['user_id'] = user.id
            sess['tenant_id'] = tenant.id
        return client
    return _login


@pytest.fixture(scope='function')
def admin_client(login, admin_user, tenant1):
    """Authenticated client for the tenant1 administrator."""
    return login(admin_user, tenant1)


@pytest.fixture(scope='function')
def rep_client(login, rep_user, tenant1):
    """Authenticated client for a tenant1 representative."""
    return login(rep_user, tenant1)
