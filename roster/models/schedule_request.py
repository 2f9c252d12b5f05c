"""ScheduleRequest model - shift change and shift swap requests."""
import enum
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from roster.database import Base, BigIntPK


class RequestType(enum.Enum):
    """Request variants."""
    SHIFT_CHANGE = 'shift_change'
    SWAP = 'swap'


class RequestStatus(enum.Enum):
    """Request status. Only PENDING may transition; the others are final."""
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'


class ScheduleRequest(Base):
    """
    Employee request resolved by a tenant admin.

    shift_change: requester wants `requested_shift` instead of `current_shift` on `date`.
    swap:         requester and target exchange their shifts on `date`.
    """

    __tablename__ = 'schedule_request'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    tenant_id = Column(BigIntPK, ForeignKey('tenant.id'), nullable=False, index=True)
    type = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default=RequestStatus.PENDING.value, index=True)

    requester_id = Column(String(80), nullable=False, index=True)
    requester_name = Column(String(200), nullable=False)
    team = Column(String(120), nullable=True)
    date = Column(String(10), nullable=False)  # ISO date, matches roster dates
    reason = Column(Text, nullable=False)

    # shift_change
    current_shift = Column(String(20), nullable=True)
    requested_shift = Column(String(20), nullable=True)

    # swap
    target_employee_id = Column(String(80), nullable=True, index=True)
    target_employee_name = Column(String(200), nullable=True)
    requester_shift = Column(String(20), nullable=True)
    target_shift = Column(String(20), nullable=True)

    # resolution audit
    resolved_by = Column(String(120), nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    admin_message = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=True)

    tenant = relationship('Tenant', backref='schedule_requests')

    __table_args__ = (
        CheckConstraint("type IN ('shift_change', 'swap')", name='check_request_type'),
        CheckConstraint("status IN ('pending', 'approved', 'rejected')", name='check_request_status'),
    )

    @property
    def is_pending(self):
        return self.status == RequestStatus.PENDING.value

    @property
    def is_swap(self):
        return self.type == RequestType.SWAP.value

    def to_dict(self):
        data = {
            'id': self.id,
            'type': self.type,
            'status': self.status,
            'team': self.team,
            'date': self.date,
            'reason': self.reason,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
            'approved_by': self.resolved_by,
            'approved_at': self.resolved_at.isoformat() if self.resolved_at else None,
            'admin_message': self.admin_message,
        }
        if self.is_swap:
            data.update({
                'requester_id': self.requester_id,
                'requester_name': self.requester_name,
                'target_employee_id': self.target_employee_id,
                'target_employee_name': self.target_employee_name,
                'requester_shift': self.requester_shift,
                'target_shift': self.target_shift,
            })
        else:
            data.update({
                'employee_id': self.requester_id,
                'employee_name': self.requester_name,
                'current_shift': self.current_shift,
                'requested_shift': self.requested_shift,
            })
        return data

    def __repr__(self):
        return f"<ScheduleRequest(id={self.id}, type='{self.type}', status='{self.status}')>"
