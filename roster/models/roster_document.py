"""RosterDocument model - the per-tenant roster JSON document."""
from sqlalchemy import Column, String, DateTime, Integer, JSON, ForeignKey
from sqlalchemy.orm import relationship, backref
from sqlalchemy.sql import func
from roster.database import Base, BigIntPK


def empty_roster():
    """Return a new empty roster document."""
    return {'dates': [], 'teams': {}}


class RosterDocument(Base):
    """
    One roster document per tenant, read and rewritten wholesale.

    data:     working roster edited by admins and approved requests
    baseline: last imported roster (CSV), used to detect admin edits on re-import

    Both share the shape {"dates": [...], "teams": {team: [employee, ...]}}.
    `version` is bumped on every write; a write based on a stale version
    fails with StaleDataError instead of overwriting a concurrent change.
    """

    __tablename__ = 'roster_document'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    tenant_id = Column(BigIntPK, ForeignKey('tenant.id', ondelete='CASCADE'), nullable=False, unique=True)
    data = Column(JSON, nullable=False, default=empty_roster)
    baseline = Column(JSON, nullable=False, default=empty_roster)
    version = Column(Integer, nullable=False)
    updated_by = Column(String(120), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    tenant = relationship('Tenant', backref=backref('roster_document', uselist=False))

    __mapper_args__ = {'version_id_col': version}

    def __repr__(self):
        return f"<RosterDocument(tenant_id={self.tenant_id}, version={self.version})>"
