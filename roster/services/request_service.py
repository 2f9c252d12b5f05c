"""
Schedule request workflow - shift changes and swaps.

    pending --approve--> approved   (roster updated, modifications logged)
    pending --reject---> rejected   (roster untouched)

Only pending requests can be resolved. Resolution locks the request row and
the roster document, so concurrent approvals of the same request resolve it
exactly once; the loser gets a ConflictError.
"""
from datetime import datetime
import logging

from sqlalchemy import case

from roster.exceptions import ValidationError, NotFoundError, ConflictError
from roster.models import (
    ScheduleRequest, RequestType, RequestStatus, ModificationSource
)
from roster.services import roster_store
from roster.services.roster_store import INACTIVE_TEAM
from roster.services.modification_service import log_modification
from roster.utils.dates import parse_roster_date
from roster.utils.validation import text_value
from roster.utils.shift_codes import normalize_code, shift_definitions_for, is_valid_shift_code

logger = logging.getLogger(__name__)

MAX_REASON_LENGTH = 1000


def _require_reason(reason):
    reason = text_value(reason, 'Reason')
    if not reason:
        raise ValidationError('A reason is required')
    if len(reason) > MAX_REASON_LENGTH:
        raise ValidationError(f'Reason is too long (max {MAX_REASON_LENGTH} characters)')
    return reason


def _roster_cell(data, employee_id, iso_date, role='Employee'):
    """Return (team, employee, shift) for an active employee on a roster date."""
    found = roster_store.find_employee(data, employee_id)
    if not found or found[0] == INACTIVE_TEAM:
        raise ValidationError(f'{role} {employee_id} is not on the roster')
    index = roster_store.date_index(data, iso_date)
    if index is None:
        raise ValidationError(f'Date {iso_date} is not part of the roster')
    team_name, _, employee = found
    return team_name, employee, employee['schedule'][index]


def _parse_date(value):
    iso_date = parse_roster_date(value)
    if not iso_date:
        raise ValidationError(f'Invalid date: {value}')
    return iso_date


# ===== SUBMISSION (employee) =====

def submit_shift_change(session, tenant, employee_id, date_value, requested_shift, reason):
    iso_date = _parse_date(date_value)
    reason = _require_reason(reason)
    requested_shift = normalize_code(requested_shift)
    if not is_valid_shift_code(requested_shift, shift_definitions_for(tenant.settings)):
        raise ValidationError(f'Unknown shift code: {requested_shift}')

    data = roster_store.working_copy(roster_store.load_document(session, tenant.id))
    team_name, employee, current_shift = _roster_cell(data, employee_id, iso_date)
    if current_shift == requested_shift:
        raise ValidationError(f'You are already assigned {requested_shift or "no shift"} on {iso_date}')

    request_obj = ScheduleRequest(
        tenant_id=tenant.id,
        type=RequestType.SHIFT_CHANGE.value,
        status=RequestStatus.PENDING.value,
        requester_id=employee['id'],
        requester_name=employee['name'],
        team=team_name,
        date=iso_date,
        reason=reason,
        current_shift=current_shift,
        requested_shift=requested_shift,
    )
    session.add(request_obj)
    session.commit()

    logger.info(f"[REQUESTS] Shift change #{request_obj.id} submitted: tenant {tenant.id} {employee['id']} {iso_date} {current_shift!r}->{requested_shift!r}")
    return request_obj


def submit_swap(session, tenant, employee_id, target_employee_id, date_value, reason):
    iso_date = _parse_date(date_value)
    reason = _require_reason(reason)
    target_employee_id = text_value(target_employee_id, 'Target employee')
    if not target_employee_id:
        raise ValidationError('Target employee is required')
    if target_employee_id == employee_id:
        raise ValidationError('You cannot swap shifts with yourself')

    data = roster_store.working_copy(roster_store.load_document(session, tenant.id))
    team_name, requester, requester_shift = _roster_cell(data, employee_id, iso_date)
    _, target, target_shift = _roster_cell(data, target_employee_id, iso_date, role='Target employee')

    request_obj = ScheduleRequest(
        tenant_id=tenant.id,
        type=RequestType.SWAP.value,
        status=RequestStatus.PENDING.value,
        requester_id=requester['id'],
        requester_name=requester['name'],
        team=team_name,
        date=iso_date,
        reason=reason,
        target_employee_id=target['id'],
        target_employee_name=target['name'],
        requester_shift=requester_shift,
        target_shift=target_shift,
    )
    session.add(request_obj)
    session.commit()

    logger.info(f"[REQUESTS] Swap #{request_obj.id} submitted: tenant {tenant.id} {requester['id']}<->{target['id']} {iso_date}")
    return request_obj


# ===== LISTING =====

def _base_query(session, tenant_id):
    return session.query(ScheduleRequest).filter(ScheduleRequest.tenant_id == tenant_id)


def list_requests(session, tenant_id, status=None, request_type=None):
    """All requests of a tenant: pending first, newest first within each group."""
    query = _base_query(session, tenant_id)
    if status:
        query = query.filter(ScheduleRequest.status == status)
    if request_type:
        query = query.filter(ScheduleRequest.type == request_type)

    pending_first = case((ScheduleRequest.status == RequestStatus.PENDING.value, 0), else_=1)
    return query.order_by(
        pending_first, ScheduleRequest.created_at.desc(), ScheduleRequest.id.desc()
    ).all()


def list_pending(session, tenant_id):
    return list_requests(session, tenant_id, status=RequestStatus.PENDING.value)


def list_employee_requests(session, tenant_id, employee_id):
    """Requests the employee made or is the swap target of, newest first."""
    return _base_query(session, tenant_id).filter(
        (ScheduleRequest.requester_id == employee_id)
        | (ScheduleRequest.target_employee_id == employee_id)
    ).order_by(ScheduleRequest.created_at.desc(), ScheduleRequest.id.desc()).all()


def get_request(session, tenant_id, request_id, for_update=False):
    query = _base_query(session, tenant_id).filter(ScheduleRequest.id == request_id)
    if for_update:
        query = query.with_for_update()
    request_obj = query.first()
    if not request_obj:
        raise NotFoundError(f'Request {request_id} not found')
    return request_obj


def count_pending(session, tenant_id):
    return _base_query(session, tenant_id).filter(
        ScheduleRequest.status == RequestStatus.PENDING.value
    ).count()


# ===== RESOLUTION (admin) =====

def _apply_shift_change(session, tenant, data, request_obj, actor):
    """Set the requested shift. Returns True if the roster cell changed."""
    _, employee, current = _roster_cell(data, request_obj.requester_id, request_obj.date)
    requested = request_obj.requested_shift or ''
    if current == requested:
        return False
    index = roster_store.date_index(data, request_obj.date)
    employee['schedule'][index] = requested
    log_modification(
        session, tenant.id, employee, request_obj.date, current, requested,
        modified_by=actor, source=ModificationSource.SHIFT_CHANGE,
    )
    return True


def _apply_swap(session, tenant, data, request_obj, actor):
    """Exchange the two employees' shifts. Returns True if any cell changed."""
    # Exchange whatever the two employees hold at approval time
    _, requester, requester_shift = _roster_cell(data, request_obj.requester_id, request_obj.date)
    _, target, target_shift = _roster_cell(
        data, request_obj.target_employee_id, request_obj.date, role='Target employee'
    )
    if requester_shift == target_shift:
        return False
    index = roster_store.date_index(data, request_obj.date)
    requester['schedule'][index] = target_shift
    target['schedule'][index] = requester_shift

    log_modification(session, tenant.id, requester, request_obj.date, requester_shift, target_shift,
                     modified_by=actor, source=ModificationSource.SWAP)
    log_modification(session, tenant.id, target, request_obj.date, target_shift, requester_shift,
                     modified_by=actor, source=ModificationSource.SWAP)
    return True


def resolve_request(session, tenant, request_id, status, actor, admin_message=None):
    """
    Approve or reject a pending request.

    Returns (request, roster_changed). roster_changed is False for rejections
    and for approvals whose cells already held the requested values.

    Raises:
        ValidationError: status is not approved/rejected
        NotFoundError: request not in this tenant
        ConflictError: request already resolved, or a concurrent roster write
    """
    status = text_value(status, 'Status').lower()
    if status not in (RequestStatus.APPROVED.value, RequestStatus.REJECTED.value):
        raise ValidationError("Status must be 'approved' or 'rejected'")
    admin_message = text_value(admin_message, 'Admin message')

    request_obj = get_request(session, tenant.id, request_id, for_update=True)
    if not request_obj.is_pending:
        raise ConflictError(
            f'Request {request_id} is already {request_obj.status}',
            payload={'status': request_obj.status},
        )

    roster_changed = False
    if status == RequestStatus.APPROVED.value:
        document = roster_store.load_document(session, tenant.id, for_update=True)
        data = roster_store.working_copy(document)
        if request_obj.is_swap:
            roster_changed = _apply_swap(session, tenant, data, request_obj, actor)
        else:
            roster_changed = _apply_shift_change(session, tenant, data, request_obj, actor)
        if roster_changed:
            roster_store.save_document(session, document, data, actor)

    now = datetime.utcnow()
    request_obj.status = status
    request_obj.resolved_by = actor
    request_obj.resolved_at = now
    request_obj.updated_at = now
    if admin_message:
        request_obj.admin_message = admin_message

    session.commit()
    logger.info(
        f"[REQUESTS] Request #{request_obj.id} ({request_obj.type}) {status} by {actor}: "
        f"tenant {tenant.id}, roster {'updated' if roster_changed else 'unchanged'}"
    )
    return request_obj, roster_changed
