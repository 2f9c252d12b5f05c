"""
Employee contact profile (email, phone, address, gender).

Stored on the employee's credential row. Employees edit their own profile;
admins can read and edit any employee's, including employees who never
logged in (a credential with the default password is created for them).
"""
import logging

from roster.exceptions import ValidationError, NotFoundError
from roster.models import EmployeeCredential
from roster.services import roster_store
from roster.services.auth_service import get_credential
from roster.utils.validation import optional_text

logger = logging.getLogger(__name__)

PROFILE_FIELDS = {
    'email': 255,
    'phone': 40,
    'address': 500,
    'gender': 30,
}


def profile_dict(employee, credential):
    profile = {
        'employee_id': employee['id'],
        'name': employee['name'],
        'team': employee['team'],
    }
    for field in PROFILE_FIELDS:
        profile[field] = getattr(credential, field) if credential is not None else None
    return profile


def _find_employee(session, tenant_id, employee_id):
    data = roster_store.working_copy(roster_store.load_document(session, tenant_id))
    found = roster_store.find_employee(data, employee_id, case_insensitive=True)
    if not found:
        raise NotFoundError(f'Employee {employee_id} not found')
    team, _, employee = found
    return {'id': employee['id'], 'name': employee['name'], 'team': team}


def get_profile(session, tenant, employee_id):
    employee = _find_employee(session, tenant.id, employee_id)
    credential = get_credential(session, tenant.id, employee['id'])
    session.commit()
    return profile_dict(employee, credential)


def _clean_changes(changes):
    cleaned = {}
    for field, max_length in PROFILE_FIELDS.items():
        if field not in changes:
            continue
        value = optional_text(changes[field], field.capitalize())
        if value is not None and len(value) > max_length:
            raise ValidationError(f'{field.capitalize()} must be at most {max_length} characters')
        cleaned[field] = value

    if cleaned.get('email') and '@' not in cleaned['email']:
        raise ValidationError('A valid email address is required')
    if not cleaned:
        raise ValidationError('Nothing to update')
    return cleaned


def update_profile(session, tenant, employee_id, changes, actor):
    """
    Update the given profile fields. Blank values clear a field.

    Raises:
        ValidationError: unknown values, too long, bad email, or nothing to update
        NotFoundError: employee not in the roster
    """
    cleaned = _clean_changes(changes)
    employee = _find_employee(session, tenant.id, employee_id)

    credential = get_credential(session, tenant.id, employee['id'])
    if credential is None:
        credential = EmployeeCredential(tenant_id=tenant.id, employee_id=employee['id'])
        credential.set_password(employee['id'], is_default=True)
        session.add(credential)

    for field, value in cleaned.items():
        setattr(credential, field, value)
    session.commit()

    logger.info(f"[PROFILE] {', '.join(sorted(cleaned))} updated for employee {employee['id']} on tenant {tenant.slug} by {actor}")
    return profile_dict(employee, credential)
