"""EmployeeCredential model - login credentials for roster employees."""
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from werkzeug.security import generate_password_hash, check_password_hash
from roster.database import Base, BigIntPK


class EmployeeCredential(Base):
    """Password and reset state for one employee of one tenant.

    Employees themselves live in the tenant's roster document; this row only
    exists once the employee has logged in, been sent a password link or had
    a profile saved. It also holds the contact profile (email, phone, address,
    gender).
    """

    __tablename__ = 'employee_credential'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    tenant_id = Column(BigIntPK, ForeignKey('tenant.id'), nullable=False, index=True)
    employee_id = Column(String(80), nullable=False)
    password_hash = Column(String(255), nullable=False)
    is_default_password = Column(Boolean, nullable=False, default=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(40), nullable=True)
    address = Column(String(500), nullable=True)
    gender = Column(String(30), nullable=True)
    reset_token = Column(String(128), nullable=True, unique=True)
    reset_token_expires_at = Column(DateTime, nullable=True)
    status = Column(String(20), nullable=False, default='active')
    deleted_at = Column(DateTime, nullable=True)
    notifications_read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint('tenant_id', 'employee_id', name='uq_employee_credential'),
    )

    @property
    def is_active(self):
        return self.status != 'inactive'

    def set_password(self, password, is_default=False):
        """Set password hash and clear any pending reset token."""
        self.password_hash = generate_password_hash(password, method='scrypt')
        self.is_default_password = is_default
        self.reset_token = None
        self.reset_token_expires_at = None

    def check_password(self, password):
        """Check password against hash."""
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def deactivate(self):
        self.status = 'inactive'
        self.deleted_at = datetime.utcnow()

    def reactivate(self):
        self.status = 'active'
        self.deleted_at = None

    def __repr__(self):
        return f"<EmployeeCredential(tenant_id={self.tenant_id}, employee_id='{self.employee_id}', status='{self.status}')>"
