"""
Employee notifications.

Built on the fly from requests and the modification log; nothing is stored
except the "read up to" timestamp on the employee credential.
"""
from datetime import datetime, timedelta
import logging

from flask import current_app

from roster.models import ScheduleRequest, ShiftModification, RequestStatus
from roster.services.auth_service import get_credential
from roster.utils.shift_codes import get_shift_label

logger = logging.getLogger(__name__)


def _window_start(credential, now):
    days = current_app.config.get('NOTIFICATION_WINDOW_DAYS', 7)
    start = now - timedelta(days=days)
    read_at = credential.notifications_read_at if credential else None
    if read_at and read_at > start:
        return read_at
    return start


def get_notifications(session, tenant_id, employee_id, now=None, shift_definitions=None):
    """
    Unread notifications for an employee, newest first.

    Covers resolved own requests, changes to the employee's shifts and
    pending swaps that target the employee. Shift changes carry the labels
    from `shift_definitions` (tenant overrides) next to the codes.
    """
    now = now or datetime.utcnow()
    credential = get_credential(session, tenant_id, employee_id)
    since = _window_start(credential, now)

    items = []

    resolved = session.query(ScheduleRequest).filter(
        ScheduleRequest.tenant_id == tenant_id,
        ScheduleRequest.requester_id == employee_id,
        ScheduleRequest.status.in_([RequestStatus.APPROVED.value, RequestStatus.REJECTED.value]),
        ScheduleRequest.resolved_at > since,
    ).all()
    for request_obj in resolved:
        kind = 'swap' if request_obj.is_swap else 'shift change'
        items.append({
            'type': f'request_{request_obj.status}',
            'request_id': request_obj.id,
            'date': request_obj.date,
            'message': f'Your {kind} request for {request_obj.date} was {request_obj.status}',
            'admin_message': request_obj.admin_message,
            'timestamp': request_obj.resolved_at,
        })

    modifications = session.query(ShiftModification).filter(
        ShiftModification.tenant_id == tenant_id,
        ShiftModification.employee_id == employee_id,
        ShiftModification.created_at > since,
    ).all()
    for record in modifications:
        old_label = get_shift_label(record.old_shift, shift_definitions)
        new_label = get_shift_label(record.new_shift, shift_definitions)
        items.append({
            'type': 'shift_modified',
            'date': record.date,
            'message': f'Your shift on {record.date} changed from {old_label} to {new_label}',
            'old_shift': record.old_shift,
            'new_shift': record.new_shift,
            'old_shift_label': old_label,
            'new_shift_label': new_label,
            'timestamp': record.created_at,
        })

    incoming_swaps = session.query(ScheduleRequest).filter(
        ScheduleRequest.tenant_id == tenant_id,
        ScheduleRequest.target_employee_id == employee_id,
        ScheduleRequest.status == RequestStatus.PENDING.value,
        ScheduleRequest.created_at > since,
    ).all()
    for request_obj in incoming_swaps:
        items.append({
            'type': 'swap_requested',
            'request_id': request_obj.id,
            'date': request_obj.date,
            'message': f'{request_obj.requester_name} asked to swap shifts with you on {request_obj.date}',
            'timestamp': request_obj.created_at,
        })

    items.sort(key=lambda item: item['timestamp'], reverse=True)
    for item in items:
        item['timestamp'] = item['timestamp'].isoformat()
    return items


def mark_notifications_read(session, tenant_id, employee_id, now=None):
    credential = get_credential(session, tenant_id, employee_id)
    if credential is None:
        return None
    credential.notifications_read_at = now or datetime.utcnow()
    session.commit()
    logger.info(f"[NOTIFICATIONS] Marked read for employee {employee_id} (tenant {tenant_id})")
    return credential.notifications_read_at
