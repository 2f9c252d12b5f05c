"""
Tenant lifecycle service.

Public signup, the developer portal operations (create, update, activate,
deactivate, admin users, export, reset) and the cached slug lookup used by
tenant resolution.
"""
from datetime import datetime
import logging

from flask import current_app

from roster.exceptions import ValidationError, NotFoundError, ConflictError, ForbiddenError
from roster.models import (
    Tenant, TenantAdminUser, EmployeeCredential, ScheduleRequest, ShiftModification,
    PLAN_DURATIONS, empty_roster,
)
from roster.services import roster_store
from roster.services.roster_store import INACTIVE_TEAM
from roster.services.cache_service import get_cache, GLOBAL_SCOPE
from roster.utils.tenant_resolver import normalize_slug, is_valid_slug, RESERVED_SUBDOMAINS
from roster.utils.validation import text_value, optional_text, bool_value

logger = logging.getLogger(__name__)

CACHE_MODULE = 'tenant_slug'
UPDATABLE_FIELDS = ('name', 'contact_email', 'contact_phone', 'max_users', 'max_employees')


# ===== LOOKUP =====

def get_tenant_by_slug(session, slug):
    """
    Resolve an available (active, not expired) tenant by slug, or None.

    The slug -> id mapping is cached; the row itself is always loaded so
    deactivation takes effect immediately.
    """
    slug = normalize_slug(slug)
    if not slug:
        return None

    def load():
        tenant = session.query(Tenant).filter_by(slug=slug).first()
        return tenant.id if tenant else None

    tenant_id = get_cache().memoize(
        GLOBAL_SCOPE, CACHE_MODULE, slug, load, ttl=current_app.config.get('CACHE_TENANT_TTL', 300)
    )
    if tenant_id is None:
        return None

    tenant = session.get(Tenant, tenant_id)
    if tenant is None or tenant.slug != slug:
        # Stale cache entry
        invalidate_tenant_cache(slug)
        return None
    return tenant if tenant.is_available else None


def invalidate_tenant_cache(*slugs):
    cache = get_cache()
    for slug in slugs:
        if slug:
            cache.delete(GLOBAL_SCOPE, CACHE_MODULE, slug)


def get_tenant(session, tenant_id):
    tenant = session.get(Tenant, tenant_id)
    if not tenant:
        raise NotFoundError('Tenant not found')
    return tenant


# ===== VALIDATION =====

def _validate_slug(session, slug, exclude_id=None):
    slug = normalize_slug(slug)
    if not is_valid_slug(slug):
        raise ValidationError('Slug must contain only lowercase letters, numbers and hyphens')
    if slug in RESERVED_SUBDOMAINS or slug == 'tenant':
        raise ValidationError(f'Slug "{slug}" is reserved')
    query = session.query(Tenant).filter(Tenant.slug == slug)
    if exclude_id is not None:
        query = query.filter(Tenant.id != exclude_id)
    if query.first():
        raise ConflictError(f'Slug "{slug}" is already taken')
    return slug


def _validate_plan(plan, required=False):
    plan = text_value(plan, 'Plan').lower()
    if not plan and not required:
        return None
    if plan not in PLAN_DURATIONS:
        raise ValidationError(f"Plan must be one of: {', '.join(PLAN_DURATIONS)}")
    return plan


def _validate_limit(value, field):
    if value in (None, ''):
        return None
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be a number')
    if value < 0:
        raise ValidationError(f'{field} cannot be negative')
    return value


# ===== SIGNUP / CREATE =====

def signup_tenant(session, name, slug, plan, contact_email=None, contact_phone=None):
    """Public signup: tenant is created inactive with a pending subscription."""
    name = text_value(name, 'Name')
    if not name:
        raise ValidationError('Organization name is required')
    slug = _validate_slug(session, slug or name)
    plan = _validate_plan(plan, required=True)

    tenant = Tenant(
        name=name,
        slug=slug,
        active=False,
        plan=plan,
        subscription_status='pending',
        subscription_created_at=datetime.utcnow(),
        contact_email=optional_text(contact_email, 'Contact email'),
        contact_phone=optional_text(contact_phone, 'Contact phone'),
        settings={'organization_name': name},
    )
    session.add(tenant)
    session.commit()

    logger.info(f"[TENANTS] Signup: '{slug}' ({plan}) pending activation")
    return tenant


def create_tenant(session, name, slug, actor, plan=None, max_users=None, max_employees=None,
                  admin_username=None, admin_password=None, admin_full_name=None):
    """Developer-created tenant: active immediately, optionally with its first admin."""
    name = text_value(name, 'Name')
    if not name:
        raise ValidationError('Tenant name is required')
    slug = _validate_slug(session, slug or name)
    plan = _validate_plan(plan)
    admin_username = text_value(admin_username, 'Admin username')
    admin_password = text_value(admin_password, 'Admin password', strip=False)
    if admin_username and not admin_password:
        raise ValidationError('Admin password is required')

    tenant = Tenant(
        name=name,
        slug=slug,
        active=True,
        max_users=_validate_limit(max_users, 'max_users'),
        max_employees=_validate_limit(max_employees, 'max_employees'),
        settings={'organization_name': name},
    )
    if plan:
        tenant.subscription_created_at = datetime.utcnow()
        tenant.activate_subscription(plan)
    session.add(tenant)
    session.flush()

    roster_store.load_document(session, tenant.id)

    if admin_username:
        admin_user = TenantAdminUser(
            tenant_id=tenant.id, username=admin_username,
            full_name=optional_text(admin_full_name, 'Admin full name'),
        )
        admin_user.set_password(admin_password)
        session.add(admin_user)

    session.commit()
    logger.info(f"[TENANTS] Tenant created: '{slug}' (id={tenant.id}) by {actor}")
    return tenant


# ===== DEVELOPER OPERATIONS =====

def get_tenant_stats(session, tenant):
    data = roster_store.working_copy(roster_store.load_document(session, tenant.id))
    active_employees = sum(
        1 for team_name, _ in roster_store.iter_employees(data) if team_name != INACTIVE_TEAM
    )
    return {
        'admin_users': session.query(TenantAdminUser).filter_by(tenant_id=tenant.id).count(),
        'employees': active_employees,
        'inactive_employees': len(data['teams'].get(INACTIVE_TEAM, [])),
        'teams': len([t for t in data['teams'] if t != INACTIVE_TEAM]),
        'dates': len(data['dates']),
        'pending_requests': session.query(ScheduleRequest).filter_by(
            tenant_id=tenant.id, status='pending'
        ).count(),
    }


def list_tenants_with_stats(session, search_query=None):
    query = session.query(Tenant)
    if search_query:
        like = f'%{search_query.lower()}%'
        query = query.filter((Tenant.slug.ilike(like)) | (Tenant.name.ilike(like)))
    tenants = query.order_by(Tenant.created_at.desc(), Tenant.id.desc()).all()

    result = []
    for tenant in tenants:
        item = tenant.to_dict()
        item['stats'] = get_tenant_stats(session, tenant)
        result.append(item)
    session.commit()
    return result


def get_tenant_detail(session, tenant_id):
    tenant = get_tenant(session, tenant_id)
    item = tenant.to_dict()
    item['stats'] = get_tenant_stats(session, tenant)
    item['admin_users'] = [u.to_dict() for u in tenant.admin_users]
    session.commit()
    return item


def update_tenant(session, tenant_id, changes, actor):
    """Update name, slug, active flag, limits, contact info and settings."""
    tenant = get_tenant(session, tenant_id)
    old_slug = tenant.slug

    if 'slug' in changes and changes['slug'] != tenant.slug:
        tenant.slug = _validate_slug(session, changes['slug'], exclude_id=tenant.id)

    for field in UPDATABLE_FIELDS:
        if field not in changes:
            continue
        value = changes[field]
        if field in ('max_users', 'max_employees'):
            value = _validate_limit(value, field)
        elif field == 'name':
            value = text_value(value, 'Name')
            if not value:
                raise ValidationError('Tenant name cannot be empty')
        else:
            value = optional_text(value, field)
        setattr(tenant, field, value)

    if 'active' in changes:
        tenant.active = bool_value(changes['active'], 'active')

    if isinstance(changes.get('settings'), dict):
        settings = dict(tenant.settings or {})
        settings.update(changes['settings'])
        tenant.settings = settings

    session.commit()
    invalidate_tenant_cache(old_slug, tenant.slug)
    logger.info(f"[TENANTS] Tenant {tenant.id} updated by {actor}: {sorted(changes)}")
    return tenant


def set_plan(session, tenant_id, plan, actor):
    tenant = get_tenant(session, tenant_id)
    tenant.plan = _validate_plan(plan, required=True)
    if not tenant.subscription_status:
        tenant.subscription_status = 'pending'
        tenant.subscription_created_at = datetime.utcnow()
    session.commit()
    logger.info(f"[TENANTS] Tenant {tenant.id} plan set to {plan} by {actor}")
    return tenant


def activate_subscription(session, tenant_id, actor, plan=None):
    """Activate the tenant; the subscription runs 30 (monthly) or 365 (yearly) days from now."""
    tenant = get_tenant(session, tenant_id)
    plan = _validate_plan(plan) or tenant.plan or 'monthly'
    tenant.activate_subscription(plan)
    if not tenant.subscription_created_at:
        tenant.subscription_created_at = tenant.subscription_started_at
    session.commit()
    invalidate_tenant_cache(tenant.slug)
    logger.info(f"[TENANTS] Tenant {tenant.id} activated ({plan}) until {tenant.subscription_expires_at.isoformat()} by {actor}")
    return tenant


def deactivate_tenant(session, tenant_id, actor):
    tenant = get_tenant(session, tenant_id)
    tenant.active = False
    session.commit()
    invalidate_tenant_cache(tenant.slug)
    logger.warning(f"[TENANTS] Tenant {tenant.id} deactivated by {actor}")
    return tenant


def add_admin_user(session, tenant_id, username, password, actor, full_name=None):
    tenant = get_tenant(session, tenant_id)
    username = text_value(username, 'Username')
    password = text_value(password, 'Password', strip=False)
    if not username or not password:
        raise ValidationError('Username and password are required')

    existing = session.query(TenantAdminUser).filter_by(tenant_id=tenant.id, username=username).first()
    if existing:
        raise ConflictError(f'Admin user {username} already exists')

    count = session.query(TenantAdminUser).filter_by(tenant_id=tenant.id).count()
    if tenant.max_users is not None and count >= tenant.max_users:
        raise ForbiddenError(f'User limit reached ({tenant.max_users})')

    admin_user = TenantAdminUser(
        tenant_id=tenant.id, username=username, full_name=optional_text(full_name, 'Full name')
    )
    admin_user.set_password(password)
    session.add(admin_user)
    session.commit()
    logger.info(f"[TENANTS] Admin user '{username}' added to tenant {tenant.id} by {actor}")
    return admin_user


def remove_admin_user(session, tenant_id, username, actor):
    tenant = get_tenant(session, tenant_id)
    admin_user = session.query(TenantAdminUser).filter_by(tenant_id=tenant.id, username=username).first()
    if not admin_user:
        raise NotFoundError(f'Admin user {username} not found')
    session.delete(admin_user)
    session.commit()
    logger.info(f"[TENANTS] Admin user '{username}' removed from tenant {tenant.id} by {actor}")


def export_tenant(session, tenant_id):
    """Everything stored for one tenant, as a JSON-serializable dict (no password hashes)."""
    tenant = get_tenant(session, tenant_id)
    document = roster_store.load_document(session, tenant.id)

    credentials = session.query(EmployeeCredential).filter_by(tenant_id=tenant.id).all()
    requests = session.query(ScheduleRequest).filter_by(tenant_id=tenant.id).order_by(ScheduleRequest.id).all()
    modifications = session.query(ShiftModification).filter_by(tenant_id=tenant.id).order_by(ShiftModification.id).all()

    export = {
        'exported_at': datetime.utcnow().isoformat(),
        'tenant': tenant.to_dict(),
        'admin_users': [u.to_dict() for u in tenant.admin_users],
        'employee_credentials': [
            {
                'employee_id': c.employee_id,
                'email': c.email,
                'phone': c.phone,
                'address': c.address,
                'gender': c.gender,
                'status': c.status,
                'is_default_password': c.is_default_password,
            }
            for c in credentials
        ],
        'roster': roster_store.working_copy(document),
        'baseline': roster_store.baseline_copy(document),
        'roster_version': document.version,
        'schedule_requests': [r.to_dict() for r in requests],
        'shift_modifications': [m.to_dict() for m in modifications],
    }
    session.commit()
    return export


def reset_tenant(session, tenant_id, actor):
    """Clear the roster, requests, modification log and employee credentials of a tenant."""
    tenant = get_tenant(session, tenant_id)
    document = roster_store.load_document(session, tenant.id, for_update=True)

    requests_deleted = session.query(ScheduleRequest).filter_by(tenant_id=tenant.id).delete()
    modifications_deleted = session.query(ShiftModification).filter_by(tenant_id=tenant.id).delete()
    credentials_deleted = session.query(EmployeeCredential).filter_by(tenant_id=tenant.id).delete()
    roster_store.save_document(session, document, empty_roster(), actor, baseline=empty_roster())
    session.commit()

    summary = {
        'requests_deleted': requests_deleted,
        'modifications_deleted': modifications_deleted,
        'credentials_deleted': credentials_deleted,
    }
    logger.warning(f"[TENANTS] Tenant {tenant.id} reset by {actor}: {summary}")
    return summary
