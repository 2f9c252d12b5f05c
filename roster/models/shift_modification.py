"""
ShiftModification model - append-only log of roster cell changes.
Used for display (admin report, employee notifications), never for conflict resolution.
"""
import enum
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from roster.database import Base, BigIntPK


class ModificationSource(enum.Enum):
    """What caused the change."""
    ADMIN_EDIT = 'admin_edit'
    SHIFT_CHANGE = 'shift_change'
    SWAP = 'swap'


class ShiftModification(Base):
    """One changed roster cell (employee x date)."""

    __tablename__ = 'shift_modification'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    tenant_id = Column(BigIntPK, ForeignKey('tenant.id'), nullable=False, index=True)
    employee_id = Column(String(80), nullable=False, index=True)
    employee_name = Column(String(200), nullable=True)
    team_name = Column(String(120), nullable=True)
    date = Column(String(10), nullable=False)
    old_shift = Column(String(20), nullable=True)
    new_shift = Column(String(20), nullable=True)
    modified_by = Column(String(120), nullable=False)
    source = Column(String(20), nullable=False, default=ModificationSource.ADMIN_EDIT.value)
    month_year = Column(String(7), nullable=False, index=True)  # YYYY-MM of the change
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    tenant = relationship('Tenant', backref='shift_modifications')

    def to_dict(self):
        return {
            'employee_id': self.employee_id,
            'employee_name': self.employee_name,
            'team_name': self.team_name,
            'date': self.date,
            'old_shift': self.old_shift,
            'new_shift': self.new_shift,
            'modified_by': self.modified_by,
            'source': self.source,
            'month_year': self.month_year,
            'timestamp': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<ShiftModification {self.employee_id} {self.date}: {self.old_shift}->{self.new_shift}>"
