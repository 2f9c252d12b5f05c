"""
Role decorators for the three portals.

Each role has its own session key and nothing else satisfies it:

    developer_user_id      developer portal (no tenant)
    tenant_admin           {'tenant_id', 'username'}
    employee               {'tenant_id', 'employee_id'}

Admin and employee sessions are also bound to the tenant they logged into;
presenting one on another tenant's host/path is rejected like no session.
"""

from functools import wraps
from flask import session, g

from roster.database import db_session
from roster.exceptions import UnauthorizedError, NotFoundError


def _require_resolved_tenant():
    if g.get('tenant') is None:
        raise NotFoundError('Tenant not found')
    return g.tenant


def developer_required(f):
    """Decorator: require a developer session. Sets g.developer."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        developer_id = session.get('developer_user_id')
        if not developer_id:
            raise UnauthorizedError('Developer login required')

        from roster.models import DeveloperUser
        developer = db_session.get(DeveloperUser, developer_id)
        if not developer:
            # Developer no longer exists in database
            session.pop('developer_user_id', None)
            raise UnauthorizedError('Invalid developer session')

        g.developer = developer
        return f(*args, **kwargs)

    return decorated_function


def admin_required(f):
    """Decorator: require an admin session for the resolved tenant. Sets g.admin_user."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        tenant = _require_resolved_tenant()

        admin_session = session.get('tenant_admin')
        if not isinstance(admin_session, dict) or admin_session.get('tenant_id') != tenant.id:
            raise UnauthorizedError('Admin login required')

        from roster.models import TenantAdminUser
        admin_user = db_session.query(TenantAdminUser).filter_by(
            tenant_id=tenant.id, username=admin_session.get('username')
        ).first()
        if not admin_user:
            session.pop('tenant_admin', None)
            raise UnauthorizedError('Invalid admin session')

        g.admin_user = admin_user
        return f(*args, **kwargs)

    return decorated_function


def employee_required(f):
    """Decorator: require an employee session for the resolved tenant. Sets g.employee_id."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        tenant = _require_resolved_tenant()

        employee_session = session.get('employee')
        if not isinstance(employee_session, dict) or employee_session.get('tenant_id') != tenant.id:
            raise UnauthorizedError('Employee login required')

        from roster.services.auth_service import get_credential
        credential = get_credential(db_session, tenant.id, employee_session.get('employee_id'))
        if credential is None or not credential.is_active:
            session.pop('employee', None)
            raise UnauthorizedError('Invalid employee session')

        g.employee_id = credential.employee_id
        g.employee_credential = credential
        return f(*args, **kwargs)

    return decorated_function
