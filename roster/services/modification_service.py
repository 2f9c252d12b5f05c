"""
Shift modification log.

Append-only record of changed roster cells, written in the same transaction
as the roster change that caused it.
"""
from datetime import datetime
import logging

from roster.models import ShiftModification, ModificationSource
from roster.utils.dates import current_month_year

logger = logging.getLogger(__name__)

RECENT_MODIFICATIONS_LIMIT = 50


def log_modification(
    session,
    tenant_id: int,
    employee: dict,
    iso_date: str,
    old_shift: str,
    new_shift: str,
    modified_by: str,
    source: ModificationSource = ModificationSource.ADMIN_EDIT,
):
    """
    Append a modification record.

    Args:
        session: Database session
        tenant_id: Tenant ID
        employee: Roster employee dict (id, name, team)
        iso_date: Roster date of the changed cell
        old_shift: Previous shift code
        new_shift: New shift code
        modified_by: Admin username (or approver for requests)
        source: ModificationSource enum value

    Returns:
        ShiftModification, or None when the value did not change
    """
    if (old_shift or '') == (new_shift or ''):
        return None

    now = datetime.utcnow()
    record = ShiftModification(
        tenant_id=tenant_id,
        employee_id=employee.get('id'),
        employee_name=employee.get('name'),
        team_name=employee.get('team'),
        date=iso_date,
        old_shift=old_shift or '',
        new_shift=new_shift or '',
        modified_by=modified_by,
        source=source.value,
        month_year=current_month_year(now),
        created_at=now,
    )
    session.add(record)
    # Note: Caller is responsible for committing the session

    logger.info(
        f"Shift modified: tenant {tenant_id} employee {record.employee_id} "
        f"{iso_date} {record.old_shift!r}->{record.new_shift!r} by {modified_by} ({source.value})"
    )
    return record


def get_modifications(
    session,
    tenant_id: int,
    month_year: str = None,
    employee_id: str = None,
    since: datetime = None,
    limit: int = None,
):
    """
    Retrieve modification records for a tenant, newest first.

    Args:
        session: Database session
        tenant_id: Tenant ID
        month_year: Only records made in this YYYY-MM
        employee_id: Only records for this employee
        since: Only records created after this instant
        limit: Max number of results
    """
    query = session.query(ShiftModification).filter(
        ShiftModification.tenant_id == tenant_id
    )

    if month_year:
        query = query.filter(ShiftModification.month_year == month_year)

    if employee_id:
        query = query.filter(ShiftModification.employee_id == employee_id)

    if since:
        query = query.filter(ShiftModification.created_at > since)

    query = query.order_by(ShiftModification.created_at.desc(), ShiftModification.id.desc())
    if limit:
        query = query.limit(limit)

    return query.all()


def get_monthly_report(session, tenant_id: int, month_year: str = None):
    """
    Monthly statistics plus the most recent changes for the admin dashboard.

    Returns:
        dict with monthly_stats, recent_modifications and current_month
    """
    month_year = month_year or current_month_year()
    records = get_modifications(session, tenant_id, month_year=month_year)

    employees_modified = []
    by_user = {}
    for record in reversed(records):
        if record.employee_id not in employees_modified:
            employees_modified.append(record.employee_id)
        by_user[record.modified_by] = by_user.get(record.modified_by, 0) + 1

    return {
        'monthly_stats': {
            'total_modifications': len(records),
            'employees_modified': employees_modified,
            'modifications_by_user': by_user,
        },
        'recent_modifications': [r.to_dict() for r in records[:RECENT_MODIFICATIONS_LIMIT]],
        'current_month': month_year,
    }
