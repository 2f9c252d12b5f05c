"""Models package - exports all SQLAlchemy models."""
# Platform
from roster.models.developer_user import DeveloperUser
from roster.models.tenant import Tenant, PLAN_DURATIONS

# Tenant-scoped
from roster.models.tenant_admin_user import TenantAdminUser
from roster.models.employee_credential import EmployeeCredential
from roster.models.roster_document import RosterDocument, empty_roster
from roster.models.schedule_request import ScheduleRequest, RequestType, RequestStatus
from roster.models.shift_modification import ShiftModification, ModificationSource

__all__ = [
    'DeveloperUser', 'Tenant', 'PLAN_DURATIONS',
    'TenantAdminUser', 'EmployeeCredential',
    'RosterDocument', 'empty_roster',
    'ScheduleRequest', 'RequestType', 'RequestStatus',
    'ShiftModification', 'ModificationSource',
]
