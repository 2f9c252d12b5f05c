"""DeveloperUser model - global platform operators (no tenant association)."""
from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from werkzeug.security import generate_password_hash, check_password_hash
from roster.database import Base, BigIntPK


class DeveloperUser(Base):
    """DeveloperUser model - operators of the platform itself.

    IMPORTANT: Developer users have NO tenant_id. They create, activate and
    deactivate tenants but never log into a tenant's admin or employee portal.
    """

    __tablename__ = 'developer_users'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    username = Column(String(120), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(200), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    last_login = Column(DateTime, nullable=True)

    def set_password(self, password):
        """Set password hash."""
        self.password_hash = generate_password_hash(password, method='scrypt')

    def check_password(self, password):
        """Check password against hash."""
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def __repr__(self):
        return f"<DeveloperUser(id={self.id}, username='{self.username}')>"
