import pytest

from roster import create_app
from roster.database import db_session, get_session, create_all, drop_all
from roster.models import Tenant, TenantAdminUser, DeveloperUser, EmployeeCredential
from roster.services import roster_store


ROSTER_DATES = ['2025-11-03', '2025-11-04', '2025-11-05']


def build_roster():
    """Two teams, three employees, three days."""
    return {
        'dates': list(ROSTER_DATES),
        'teams': {
            'Front Desk': [
                {'id': 'E001', 'name': 'Ana Ruiz', 'team': 'Front Desk',
                 'schedule': ['M2', 'DO', 'M3'], 'status': 'active', 'deleted_at': None},
                {'id': 'E002', 'name': 'Luis Paz', 'team': 'Front Desk',
                 'schedule': ['D1', 'M3', 'DO'], 'status': 'active', 'deleted_at': None},
            ],
            'Kitchen': [
                {'id': 'E003', 'name': 'Marta Gil', 'team': 'Kitchen',
                 'schedule': ['M4', 'M4', 'D2'], 'status': 'active', 'deleted_at': None},
            ],
        },
    }


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing."""
    return create_app('config.TestingConfig')


@pytest.fixture(autouse=True)
def database(app):
    """Fresh schema for every test, inside an application context."""
    ctx = app.app_context()
    ctx.push()
    create_all()
    yield
    db_session.remove()
    drop_all()
    ctx.pop()


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
    tenant = Tenant(slug='acme', name='Acme Hotel', active=True,
                    settings={'organization_name': 'Acme Hotel Group'})
    session.add(tenant)
    session.commit()
    return tenant


@pytest.fixture(scope='function')
def tenant2(session):
    """Second tenant for isolation tests."""
    tenant = Tenant(slug='globex', name='Globex Clinic', active=True, settings={})
    session.add(tenant)
    session.commit()
    return tenant


@pytest.fixture(scope='function')
def admin1(session, tenant1):
    admin_user = TenantAdminUser(tenant_id=tenant1.id, username='alice', full_name='Alice Admin')
    admin_user.set_password('alice-secret')
    session.add(admin_user)
    session.commit()
    return admin_user


@pytest.fixture(scope='function')
def admin2(session, tenant2):
    admin_user = TenantAdminUser(tenant_id=tenant2.id, username='bob', full_name='Bob Admin')
    admin_user.set_password('bob-secret')
    session.add(admin_user)
    session.commit()
    return admin_user


@pytest.fixture(scope='function')
def developer(session):
    developer = DeveloperUser(username='root', full_name='Platform Operator')
    developer.set_password('developer-secret')
    session.add(developer)
    session.commit()
    return developer


@pytest.fixture(scope='function')
def roster1(session, tenant1):
    """tenant1 roster: working copy and baseline both equal to build_roster()."""
    document = roster_store.load_document(session, tenant1.id, for_update=True)
    roster_store.save_document(session, document, build_roster(), 'fixture', baseline=build_roster())
    session.commit()
    return document


@pytest.fixture(scope='function')
def roster2(session, tenant2):
    data = {
        'dates': list(ROSTER_DATES),
        'teams': {
            'Ward A': [
                {'id': 'G001', 'name': 'Gus Globex', 'team': 'Ward A',
                 'schedule': ['M2', 'M2', 'M2'], 'status': 'active', 'deleted_at': None},
            ],
        },
    }
    document = roster_store.load_document(session, tenant2.id, for_update=True)
    roster_store.save_document(session, document, data, 'fixture', baseline=data)
    session.commit()
    return document


@pytest.fixture(scope='function')
def credential_e001(session, tenant1, roster1):
    credential = EmployeeCredential(tenant_id=tenant1.id, employee_id='E001')
    credential.set_password('ana-pass')
    session.add(credential)
    session.commit()
    return credential


@pytest.fixture(scope='function')
def credential_e002(session, tenant1, roster1):
    credential = EmployeeCredential(tenant_id=tenant1.id, employee_id='E002')
    credential.set_password('luis-pass')
    session.add(credential)
    session.commit()
    return credential


@pytest.fixture(scope='function')
def admin_client(app, admin1, tenant1):
    """Client with an admin session for tenant1."""
    client = app.test_client()
    with client.session_transaction() as sess:
        sess['tenant_admin'] = {'tenant_id': tenant1.id, 'username': admin1.username}
    return client


@pytest.fixture(scope='function')
def employee_client(app, credential_e001, tenant1):
    """Client with an employee session for E001 of tenant1."""
    client = app.test_client()
    with client.session_transaction() as sess:
        sess['employee'] = {'tenant_id': tenant1.id, 'employee_id': 'E001'}
    return client


@pytest.fixture(scope='function')
def developer_client(app, developer):
    client = app.test_client()
    with client.session_transaction() as sess:
        sess['developer_user_id'] = developer.id
    return client
