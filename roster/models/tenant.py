"""Tenant model - each customer organization with its own data partition."""
from datetime import datetime, timedelta
from sqlalchemy import Column, String, Boolean, DateTime, Integer, JSON, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from roster.database import Base, BigIntPK


PLAN_DURATIONS = {
    'monthly': timedelta(days=30),
    'yearly': timedelta(days=365),
}


class Tenant(Base):
    """Tenant model - an isolated organization (roster, admins, employees)."""

    __tablename__ = 'tenant'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    slug = Column(String(80), nullable=False, unique=True)  # URL-safe identifier (subdomain / path prefix)
    name = Column(String(200), nullable=False)  # Display name
    active = Column(Boolean, nullable=False, default=True)

    # Self-serve subscription (set on public signup, activated by a developer)
    plan = Column(String(20), nullable=True)
    subscription_status = Column(String(20), nullable=True)
    subscription_created_at = Column(DateTime, nullable=True)
    subscription_started_at = Column(DateTime, nullable=True)
    subscription_expires_at = Column(DateTime, nullable=True)

    contact_email = Column(String(255), nullable=True)
    contact_phone = Column(String(50), nullable=True)

    # Limits (None = unlimited)
    max_users = Column(Integer, nullable=True)
    max_employees = Column(Integer, nullable=True)

    # organization_name, shift_definitions
    settings = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    admin_users = relationship('TenantAdminUser', back_populates='tenant')

    __table_args__ = (
        CheckConstraint("plan IS NULL OR plan IN ('monthly', 'yearly')", name='check_tenant_plan'),
        CheckConstraint(
            "subscription_status IS NULL OR subscription_status IN ('pending', 'active')",
            name='check_tenant_subscription_status'
        ),
    )

    @property
    def is_expired(self):
        """Check if an activated subscription has run out."""
        return bool(self.subscription_expires_at and self.subscription_expires_at < datetime.utcnow())

    @property
    def is_available(self):
        """Tenant can be resolved by requests (active and not expired)."""
        return bool(self.active) and not self.is_expired

    @property
    def organization_name(self):
        return (self.settings or {}).get('organization_name') or self.name

    def activate_subscription(self, plan=None, now=None):
        """Activate the tenant and start a subscription period for its plan."""
        now = now or datetime.utcnow()
        plan = plan or self.plan or 'monthly'
        self.plan = plan
        self.subscription_status = 'active'
        self.subscription_started_at = now
        self.subscription_expires_at = now + PLAN_DURATIONS[plan]
        self.active = True

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'slug': self.slug,
            'is_active': bool(self.active),
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'settings': {
                'max_users': self.max_users,
                'max_employees': self.max_employees,
                'organization_name': (self.settings or {}).get('organization_name'),
            },
            'subscription': {
                'plan': self.plan,
                'status': self.subscription_status,
                'created_at': self.subscription_created_at.isoformat() if self.subscription_created_at else None,
                'started_at': self.subscription_started_at.isoformat() if self.subscription_started_at else None,
                'expires_at': self.subscription_expires_at.isoformat() if self.subscription_expires_at else None,
            } if self.plan else None,
            'contact_email': self.contact_email,
            'contact_phone': self.contact_phone,
        }

    def __repr__(self):
        return f"<Tenant(id={self.id}, slug='{self.slug}', name='{self.name}')>"
