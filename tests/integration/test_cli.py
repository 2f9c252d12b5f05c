"""
Integration tests for the flask CLI commands.
"""

from roster.models import DeveloperUser, Tenant, TenantAdminUser


def test_create_developer(app, session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=['create-developer', '--username', 'ops', '--password', 'ops-secret-1'])

    assert 'Developer created.' in result.output
    developer = session.query(DeveloperUser).filter_by(username='ops').one()
    assert developer.check_password('ops-secret-1')


def test_create_developer_short_password(app, session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=['create-developer', '--username', 'ops', '--password', 'short'])

    assert 'at least 8 characters' in result.output
    assert session.query(DeveloperUser).count() == 0


def test_create_tenant(app, session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        'create-tenant', '--name', 'Wayne Clinic', '--slug', 'wayne', '--plan', 'monthly',
        '--admin-username', 'bruce', '--admin-password', 'bruce-secret',
    ])

    assert '/tenant/wayne/api/admin/login' in result.output
    tenant = session.query(Tenant).filter_by(slug='wayne').one()
    assert tenant.is_available
    assert session.query(TenantAdminUser).filter_by(tenant_id=tenant.id, username='bruce').count() == 1


def test_create_tenant_duplicate_slug(app, tenant1):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        'create-tenant', '--name', 'Acme Again', '--slug', 'acme',
        '--admin-username', 'x', '--admin-password', 'x-secret',
    ])

    assert 'Error: Slug "acme" is already taken' in result.output
