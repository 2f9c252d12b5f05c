"""Middleware for tenant context."""
from functools import wraps
from flask import g, request, current_app
from roster.database import get_session
from roster.exceptions import NotFoundError
from roster.utils.tenant_resolver import resolve_tenant_slug


def load_tenant_context():
    """
    Resolve the tenant of the current request into g.

    Sets g.tenant_slug (what the host/path asked for) and g.tenant (the
    Tenant, or None when the slug is unknown, inactive or expired).
    """
    g.tenant = None
    g.tenant_slug = resolve_tenant_slug(request.environ, current_app.config.get('BASE_DOMAIN'))
    if not g.tenant_slug:
        return

    from roster.services.tenant_service import get_tenant_by_slug
    g.tenant = get_tenant_by_slug(get_session(), g.tenant_slug)
    if g.tenant is None:
        current_app.logger.info(f"[TENANT] Unresolved tenant slug '{g.tenant_slug}' for {request.path}")


def require_tenant(f):
    """
    Decorator: Require a resolved tenant.

    Answers 404 "Tenant not found" when the host/path names no available tenant.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('tenant') is None:
            raise NotFoundError('Tenant not found')
        return f(*args, **kwargs)
    return decorated_function
