"""
Authentication service for developers, tenant admins and employees.

Handles credential checks, first-login credential creation for employees,
password changes and emailed password links. Session cookies are written
by the blueprints; this module only decides who someone is.
"""
from datetime import datetime, timedelta
import logging
import secrets

from flask import current_app
from sqlalchemy.exc import IntegrityError

from roster.exceptions import ValidationError, NotFoundError, UnauthorizedError, ConflictError
from roster.models import DeveloperUser, Tenant, TenantAdminUser, EmployeeCredential
from roster.services import roster_store
from roster.services.roster_store import INACTIVE_TEAM
from roster.utils.tenant_resolver import normalize_slug
from roster.utils.validation import text_value

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = 'Invalid credentials'


# ===== DEVELOPERS =====

def authenticate_developer(session, username, password):
    username = text_value(username, 'Username')
    password = text_value(password, 'Password', strip=False)
    if not username or not password:
        raise ValidationError('Username and password are required')

    developer = session.query(DeveloperUser).filter_by(username=username).first()
    if not developer or not developer.check_password(password):
        logger.warning(f"[AUTH] Failed developer login for '{username}'")
        raise UnauthorizedError(INVALID_CREDENTIALS)

    developer.last_login = datetime.utcnow()
    session.commit()
    logger.info(f"[AUTH] Developer login: {username}")
    return developer


def create_developer(session, username, password, full_name=None):
    username = text_value(username, 'Username')
    password = text_value(password, 'Password', strip=False)
    if not username or not password:
        raise ValidationError('Username and password are required')
    if session.query(DeveloperUser).filter_by(username=username).first():
        raise ConflictError(f'Developer {username} already exists')

    developer = DeveloperUser(username=username, full_name=full_name)
    developer.set_password(password)
    session.add(developer)
    session.commit()
    return developer


# ===== TENANT ADMINS =====

def authenticate_admin(session, tenant, username, password):
    username = text_value(username, 'Username')
    password = text_value(password, 'Password', strip=False)
    if not username or not password:
        raise ValidationError('Username and password are required')

    admin_user = session.query(TenantAdminUser).filter_by(
        tenant_id=tenant.id, username=username
    ).first()
    if not admin_user or not admin_user.check_password(password):
        logger.warning(f"[AUTH] Failed admin login for '{username}' on tenant {tenant.slug}")
        raise UnauthorizedError(INVALID_CREDENTIALS)

    admin_user.last_login = datetime.utcnow()
    session.commit()
    logger.info(f"[AUTH] Admin login: {username} on tenant {tenant.slug}")
    return admin_user


# ===== EMPLOYEES =====

def split_employee_login(login):
    """
    Split `slug@employee_id` or `slug/employee_id` into (slug, employee_id).

    Plain ids return (None, employee_id).
    """
    login = text_value(login, 'Employee ID')
    for separator in ('@', '/'):
        if separator in login:
            slug, _, employee_id = login.partition(separator)
            return normalize_slug(slug) or None, employee_id.strip()
    return None, login


def resolve_employee_tenant(session, tenant, login):
    """Pick the tenant for an employee login: request context first, else the login prefix."""
    slug, employee_id = split_employee_login(login)
    if tenant is not None:
        if slug and slug != tenant.slug:
            raise UnauthorizedError(INVALID_CREDENTIALS)
        return tenant, employee_id
    if not slug:
        raise ValidationError('Use your organization login (organization@employee-id)')

    tenant = session.query(Tenant).filter_by(slug=slug).first()
    if not tenant or not tenant.is_available:
        raise NotFoundError('Tenant not found')
    return tenant, employee_id


def get_credential(session, tenant_id, employee_id):
    return session.query(EmployeeCredential).filter(
        EmployeeCredential.tenant_id == tenant_id,
        EmployeeCredential.employee_id == employee_id,
    ).first()


def find_roster_employee(session, tenant_id, employee_id):
    """Active roster employee by id (case-insensitive), or None."""
    data = roster_store.working_copy(roster_store.load_document(session, tenant_id))
    found = roster_store.find_employee(data, employee_id, case_insensitive=True)
    if not found or found[0] == INACTIVE_TEAM:
        return None
    return found[2]


def authenticate_employee(session, tenant, employee_id, password):
    """
    Check an employee login.

    An employee without a credential logs in with the employee id as the
    password; the credential is then created and flagged as default.
    Returns (employee dict, credential).
    """
    employee_id = text_value(employee_id, 'Employee ID')
    password = text_value(password, 'Password', strip=False)
    if not employee_id or not password:
        raise ValidationError('Employee ID and password are required')

    employee = find_roster_employee(session, tenant.id, employee_id)
    if not employee:
        logger.warning(f"[AUTH] Employee login for unknown/inactive id '{employee_id}' on tenant {tenant.slug}")
        raise UnauthorizedError(INVALID_CREDENTIALS)

    canonical_id = employee['id']
    credential = get_credential(session, tenant.id, canonical_id)

    if credential is None:
        if password != canonical_id:
            raise UnauthorizedError(INVALID_CREDENTIALS)
        credential = EmployeeCredential(tenant_id=tenant.id, employee_id=canonical_id)
        credential.set_password(canonical_id, is_default=True)
        session.add(credential)
        try:
            session.commit()
        except IntegrityError:
            # Concurrent first login created it already
            session.rollback()
            credential = get_credential(session, tenant.id, canonical_id)
            if credential is None or not credential.check_password(password):
                raise UnauthorizedError(INVALID_CREDENTIALS)
        logger.info(f"[AUTH] Default credential created for employee {canonical_id} on tenant {tenant.slug}")
        return employee, credential

    if not credential.is_active:
        raise UnauthorizedError('This account is inactive')
    if not credential.check_password(password):
        logger.warning(f"[AUTH] Failed employee login for '{canonical_id}' on tenant {tenant.slug}")
        raise UnauthorizedError(INVALID_CREDENTIALS)

    logger.info(f"[AUTH] Employee login: {canonical_id} on tenant {tenant.slug}")
    return employee, credential


def _check_new_password(new_password):
    min_length = current_app.config.get('EMPLOYEE_MIN_PASSWORD_LENGTH', 4)
    new_password = text_value(new_password, 'New password')
    if len(new_password) < min_length:
        raise ValidationError(f'Password must be at least {min_length} characters')
    return new_password


def change_employee_password(session, tenant, employee_id, current_password, new_password):
    current_password = text_value(current_password, 'Current password', strip=False)
    credential = get_credential(session, tenant.id, employee_id)
    if credential is None:
        # Still on the implicit default password
        if current_password != employee_id:
            raise UnauthorizedError('Current password is incorrect')
        credential = EmployeeCredential(tenant_id=tenant.id, employee_id=employee_id)
        session.add(credential)
    elif not credential.check_password(current_password):
        raise UnauthorizedError('Current password is incorrect')

    credential.set_password(_check_new_password(new_password), is_default=False)
    session.commit()
    logger.info(f"[AUTH] Password changed for employee {employee_id} on tenant {tenant.slug}")
    return credential


def issue_password_link(session, tenant, employee_id, email):
    """
    Create a reset token for an employee and return (credential, token).

    The credential is created on the fly (default password) when the employee
    never logged in.
    """
    email = text_value(email, 'Email')
    if not email or '@' not in email:
        raise ValidationError('A valid email address is required')

    employee = find_roster_employee(session, tenant.id, employee_id)
    if not employee:
        raise NotFoundError(f'Employee {employee_id} not found')

    credential = get_credential(session, tenant.id, employee['id'])
    if credential is None:
        credential = EmployeeCredential(tenant_id=tenant.id, employee_id=employee['id'])
        credential.set_password(employee['id'], is_default=True)
        session.add(credential)

    ttl_hours = current_app.config.get('PASSWORD_RESET_TTL_HOURS', 24)
    token = secrets.token_urlsafe(32)
    credential.email = email
    credential.reset_token = token
    credential.reset_token_expires_at = datetime.utcnow() + timedelta(hours=ttl_hours)
    session.commit()

    logger.info(f"[AUTH] Password link issued for employee {employee['id']} on tenant {tenant.slug} (valid {ttl_hours}h)")
    return credential, token


def get_credential_for_token(session, token, tenant=None):
    """
    Credential behind an unexpired password-link token.

    When a tenant is resolved for the request, the token must belong to it.

    Raises:
        ValidationError: missing or expired token
        NotFoundError: unknown, used, or other-tenant token
    """
    token = text_value(token, 'Token')
    if not token:
        raise ValidationError('Token is required')

    query = session.query(EmployeeCredential).filter(EmployeeCredential.reset_token == token)
    if tenant is not None:
        query = query.filter(EmployeeCredential.tenant_id == tenant.id)
    credential = query.first()
    if credential is None:
        raise NotFoundError('Invalid or already used link')
    if credential.reset_token_expires_at is None or credential.reset_token_expires_at < datetime.utcnow():
        raise ValidationError('This link has expired. Ask your administrator for a new one.')
    return credential


def set_password_with_token(session, token, new_password, tenant=None):
    """Consume a password-link token. Returns the credential."""
    credential = get_credential_for_token(session, token, tenant)
    new_password = _check_new_password(new_password)

    credential.set_password(new_password, is_default=False)
    session.commit()
    logger.info(f"[AUTH] Password set via link for employee {credential.employee_id} (tenant {credential.tenant_id})")
    return credential
