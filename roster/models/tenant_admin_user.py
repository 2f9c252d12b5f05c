"""TenantAdminUser model - admin credentials scoped to a single tenant."""
from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from werkzeug.security import generate_password_hash, check_password_hash
from roster.database import Base, BigIntPK


class TenantAdminUser(Base):
    """Admin of one tenant: manages its roster, employees and requests."""

    __tablename__ = 'tenant_admin_user'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    tenant_id = Column(BigIntPK, ForeignKey('tenant.id'), nullable=False, index=True)
    username = Column(String(120), nullable=False)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(200), nullable=True)
    role = Column(String(20), nullable=False, default='admin')
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    last_login = Column(DateTime, nullable=True)

    tenant = relationship('Tenant', back_populates='admin_users')

    __table_args__ = (
        UniqueConstraint('tenant_id', 'username', name='uq_tenant_admin_username'),
    )

    def set_password(self, password):
        """Set password hash."""
        self.password_hash = generate_password_hash(password, method='scrypt')

    def check_password(self, password):
        """Check password against hash."""
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'username': self.username,
            'full_name': self.full_name,
            'role': self.role,
            'tenant_id': self.tenant_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'last_login': self.last_login.isoformat() if self.last_login else None,
        }

    def __repr__(self):
        return f"<TenantAdminUser(tenant_id={self.tenant_id}, username='{self.username}')>"
