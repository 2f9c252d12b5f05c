"""
Developer Blueprint - platform operator portal.

Routes:
- /api/developer/login, /logout, /me
- /api/developer/tenants                       - list (with stats) / create
- /api/developer/tenants/<id>                  - detail / update
- /api/developer/tenants/<id>/plan             - set plan
- /api/developer/tenants/<id>/activate         - start subscription period
- /api/developer/tenants/<id>/deactivate
- /api/developer/tenants/<id>/users[/<name>]   - tenant admin users
- /api/developer/tenants/<id>/export           - full JSON export
- /api/developer/tenants/<id>/reset            - wipe roster, requests, log
"""
from typing import Tuple
from flask import Blueprint, request, session, jsonify, g, Response

from roster.blueprints.metrics import logins_total
from roster.database import get_session
from roster.decorators.auth import developer_required
from roster.exceptions import UnauthorizedError
from roster.services import auth_service, tenant_service
from roster.utils.validation import get_payload

developer_bp = Blueprint('developer', __name__, url_prefix='/api/developer')


@developer_bp.route('/login', methods=['POST'])
def login() -> Response:
    """Developer login - separate from tenant admin and employee logins."""
    session_db = get_session()
    payload = get_payload()
    try:
        developer = auth_service.authenticate_developer(
            session_db, payload.get('username'), payload.get('password')
        )
    except UnauthorizedError:
        logins_total.labels(role='developer', result='failure').inc()
        raise

    session.clear()
    session['developer_user_id'] = developer.id
    session.permanent = True
    logins_total.labels(role='developer', result='success').inc()

    return jsonify({'success': True, 'username': developer.username})


@developer_bp.route('/logout', methods=['POST'])
def logout() -> Response:
    session.pop('developer_user_id', None)
    return jsonify({'success': True})


@developer_bp.route('/me')
@developer_required
def me() -> Response:
    return jsonify({
        'success': True,
        'username': g.developer.username,
        'full_name': g.developer.full_name,
    })


@developer_bp.route('/tenants', methods=['GET'])
@developer_required
def list_tenants() -> Response:
    session_db = get_session()
    search_query = request.args.get('q', '').strip()
    tenants = tenant_service.list_tenants_with_stats(session_db, search_query=search_query or None)
    return jsonify({'success': True, 'tenants': tenants})


@developer_bp.route('/tenants', methods=['POST'])
@developer_required
def create_tenant() -> Tuple[Response, int]:
    session_db = get_session()
    payload = get_payload()
    tenant = tenant_service.create_tenant(
        session_db,
        name=payload.get('name'),
        slug=payload.get('slug'),
        actor=g.developer.username,
        plan=payload.get('plan'),
        max_users=payload.get('max_users'),
        max_employees=payload.get('max_employees'),
        admin_username=payload.get('admin_username'),
        admin_password=payload.get('admin_password'),
        admin_full_name=payload.get('admin_full_name'),
    )
    return jsonify({'success': True, 'tenant': tenant.to_dict()}), 201


@developer_bp.route('/tenants/<int:tenant_id>', methods=['GET'])
@developer_required
def tenant_detail(tenant_id: int) -> Response:
    session_db = get_session()
    return jsonify({'success': True, 'tenant': tenant_service.get_tenant_detail(session_db, tenant_id)})


@developer_bp.route('/tenants/<int:tenant_id>', methods=['PUT', 'PATCH'])
@developer_required
def update_tenant(tenant_id: int) -> Response:
    session_db = get_session()
    tenant = tenant_service.update_tenant(session_db, tenant_id, dict(get_payload()), g.developer.username)
    return jsonify({'success': True, 'tenant': tenant.to_dict()})


@developer_bp.route('/tenants/<int:tenant_id>/plan', methods=['POST'])
@developer_required
def set_plan(tenant_id: int) -> Response:
    session_db = get_session()
    tenant = tenant_service.set_plan(session_db, tenant_id, get_payload().get('plan'), g.developer.username)
    return jsonify({'success': True, 'tenant': tenant.to_dict()})


@developer_bp.route('/tenants/<int:tenant_id>/activate', methods=['POST'])
@developer_required
def activate_tenant(tenant_id: int) -> Response:
    session_db = get_session()
    tenant = tenant_service.activate_subscription(
        session_db, tenant_id, g.developer.username, plan=get_payload().get('plan')
    )
    return jsonify({'success': True, 'tenant': tenant.to_dict()})


@developer_bp.route('/tenants/<int:tenant_id>/deactivate', methods=['POST'])
@developer_required
def deactivate_tenant(tenant_id: int) -> Response:
    session_db = get_session()
    tenant = tenant_service.deactivate_tenant(session_db, tenant_id, g.developer.username)
    return jsonify({'success': True, 'tenant': tenant.to_dict()})


@developer_bp.route('/tenants/<int:tenant_id>/users', methods=['GET'])
@developer_required
def list_admin_users(tenant_id: int) -> Response:
    session_db = get_session()
    tenant = tenant_service.get_tenant(session_db, tenant_id)
    return jsonify({'success': True, 'users': [u.to_dict() for u in tenant.admin_users]})


@developer_bp.route('/tenants/<int:tenant_id>/users', methods=['POST'])
@developer_required
def add_admin_user(tenant_id: int) -> Tuple[Response, int]:
    session_db = get_session()
    payload = get_payload()
    admin_user = tenant_service.add_admin_user(
        session_db, tenant_id,
        username=payload.get('username'),
        password=payload.get('password'),
        actor=g.developer.username,
        full_name=payload.get('full_name'),
    )
    return jsonify({'success': True, 'user': admin_user.to_dict()}), 201


@developer_bp.route('/tenants/<int:tenant_id>/users/<username>', methods=['DELETE'])
@developer_required
def remove_admin_user(tenant_id: int, username: str) -> Response:
    session_db = get_session()
    tenant_service.remove_admin_user(session_db, tenant_id, username, g.developer.username)
    return jsonify({'success': True})


@developer_bp.route('/tenants/<int:tenant_id>/export', methods=['GET'])
@developer_required
def export_tenant(tenant_id: int) -> Response:
    session_db = get_session()
    export = tenant_service.export_tenant(session_db, tenant_id)
    response = jsonify(export)
    response.headers['Content-Disposition'] = (
        f"attachment; filename=tenant-{export['tenant']['slug']}-export.json"
    )
    return response


@developer_bp.route('/tenants/<int:tenant_id>/reset', methods=['POST'])
@developer_required
def reset_tenant(tenant_id: int) -> Response:
    session_db = get_session()
    summary = tenant_service.reset_tenant(session_db, tenant_id, g.developer.username)
    return jsonify({'success': True, **summary})
