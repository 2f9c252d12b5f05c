"""
Public Blueprint - endpoints that need no login.

Routes:
- GET  /api/csrf-token      - CSRF token for JSON clients
- GET  /api/health          - liveness check
- POST /api/public/signup   - self-serve tenant signup (pending activation)
- GET  /api/tenant/info     - name of the tenant resolved from host/path
"""
from typing import Tuple
from flask import Blueprint, jsonify, g, Response
from flask_wtf.csrf import generate_csrf

from roster.database import get_session
from roster.middleware import require_tenant
from roster.services import tenant_service
from roster.utils.validation import get_payload

public_bp = Blueprint('public', __name__, url_prefix='/api')


@public_bp.route('/csrf-token')
def csrf_token() -> Response:
    return jsonify({'csrf_token': generate_csrf()})


@public_bp.route('/health')
def health() -> Response:
    return jsonify({'status': 'ok'})


@public_bp.route('/public/signup', methods=['POST'])
def signup() -> Tuple[Response, int]:
    """Create a tenant that stays inactive until a developer activates it."""
    session_db = get_session()
    payload = get_payload()

    tenant = tenant_service.signup_tenant(
        session_db,
        name=payload.get('name'),
        slug=payload.get('slug'),
        plan=payload.get('plan'),
        contact_email=payload.get('contact_email'),
        contact_phone=payload.get('contact_phone'),
    )
    return jsonify({
        'success': True,
        'message': 'Signup received. Your organization will be available once activated.',
        'tenant': tenant.to_dict(),
    }), 201


@public_bp.route('/tenant/info')
@require_tenant
def tenant_info() -> Response:
    tenant = g.tenant
    return jsonify({
        'success': True,
        'tenant': {
            'slug': tenant.slug,
            'name': tenant.name,
            'organization_name': tenant.organization_name,
        },
    })
