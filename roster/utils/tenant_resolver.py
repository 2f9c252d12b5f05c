"""
Tenant resolution from the request host (subdomain) or path prefix.

    acme.example.com/api/admin/roster      -> slug "acme"
    example.com/tenant/acme/api/admin/roster -> slug "acme", PATH_INFO "/api/admin/roster"
"""
import re

from roster.utils.validation import text_value

TENANT_SLUG_ENVIRON_KEY = 'roster.tenant_slug'

# Labels that never name a tenant
RESERVED_SUBDOMAINS = {'www', 'api', 'admin', 'developer'}

_PATH_PREFIX_RE = re.compile(r'^/tenant/([^/]+)(/.*)?$')
_IPV4_RE = re.compile(r'^\d+\.\d+\.\d+\.\d+$')
_SLUG_RE = re.compile(r'^[a-z0-9][a-z0-9-]*$')


def normalize_slug(value):
    """Lower-case a slug and drop anything outside [a-z0-9-]."""
    return re.sub(r'[^a-z0-9-]', '', text_value(value, 'Slug').lower())


def is_valid_slug(slug):
    return bool(slug) and len(slug) <= 80 and _SLUG_RE.match(slug) is not None


def extract_subdomain(host, base_domain=None):
    """
    Extract the tenant slug from a Host header value.

    Returns None for localhost, IP addresses, reserved labels and hosts
    without a subdomain. `slug.localhost` is accepted for local testing.
    """
    if not host:
        return None

    hostname = host.split(':', 1)[0].strip().lower().rstrip('.')
    if not hostname or _IPV4_RE.match(hostname) or hostname.startswith('['):
        return None

    parts = hostname.split('.')

    if parts[-1] == 'localhost':
        # acme.localhost:5000
        if len(parts) >= 2 and parts[0] not in RESERVED_SUBDOMAINS:
            return parts[0]
        return None

    if base_domain:
        base = base_domain.lower().strip('.')
        if hostname == base:
            return None
        if hostname.endswith('.' + base):
            label = hostname[:-(len(base) + 1)].split('.')[-1]
            return None if label in RESERVED_SUBDOMAINS else label

    if len(parts) >= 3 and parts[0] not in RESERVED_SUBDOMAINS:
        return parts[0]

    return None


def split_tenant_path(path):
    """Split `/tenant/<slug>/rest` into (slug, '/rest'); (None, path) otherwise."""
    match = _PATH_PREFIX_RE.match(path or '')
    if not match:
        return None, path
    return match.group(1).lower(), match.group(2) or '/'


def resolve_tenant_slug(environ, base_domain=None):
    """Slug from the path prefix (set by TenantPathMiddleware) or else the host."""
    slug = environ.get(TENANT_SLUG_ENVIRON_KEY)
    if slug:
        return slug
    # Behind a proxy, ProxyFix has already copied X-Forwarded-Host into HTTP_HOST
    host = environ.get('HTTP_HOST') or environ.get('SERVER_NAME')
    return extract_subdomain(host, base_domain)


class TenantPathMiddleware:
    """
    WSGI middleware that strips a `/tenant/<slug>` path prefix.

    The slug is stored in the environ and the prefix moved to SCRIPT_NAME so
    that url_for() keeps generating tenant-prefixed URLs.
    """

    def __init__(self, wsgi_app):
        self.wsgi_app = wsgi_app

    def __call__(self, environ, start_response):
        slug, rest = split_tenant_path(environ.get('PATH_INFO', ''))
        if slug:
            environ[TENANT_SLUG_ENVIRON_KEY] = slug
            environ['SCRIPT_NAME'] = environ.get('SCRIPT_NAME', '') + f'/tenant/{slug}'
            environ['PATH_INFO'] = rest
        return self.wsgi_app(environ, start_response)
