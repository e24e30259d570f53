"""
Tenant model: one row per customer organisation in the shared directory.

Each Tenant owns an isolated PostgreSQL schema whose name is derived from
the tenant id (see ``physiohub.tenancy.naming``); the schema name is never
stored, so it cannot drift from the id.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import relationship

from physiohub.database import PUBLIC_SCHEMA, Base
from physiohub.tenancy.naming import schema_name_for


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TenantStatus(str, enum.Enum):
    trial = "trial"
    active = "active"
    suspended = "suspended"
    cancelled = "cancelled"


# Statuses under which a tenant may be resolved and logged into
ACCESSIBLE_STATUSES = frozenset({TenantStatus.trial.value, TenantStatus.active.value})

SUBDOMAIN_CONSTRAINT = "uq_tenants_subdomain"


class TenantPlan(str, enum.Enum):
    basic = "basic"
    professional = "professional"
    enterprise = "enterprise"


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(200), nullable=False)
    slug = Column(String(63), nullable=False, unique=True, index=True)  # URL-safe, e.g. "acme"
    subdomain = Column(String(63), nullable=True)  # optional alternate lookup key, unique
    email = Column(String(254), nullable=False)  # contact email of the owner
    status = Column(String(20), nullable=False, default=TenantStatus.trial.value)
    plan = Column(String(20), nullable=False, default=TenantPlan.basic.value)
    is_active = Column(Boolean, nullable=False, default=True)
    trial_ends_at = Column(DateTime(timezone=True), nullable=True)
    last_activity_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    users = relationship("GlobalUser", back_populates="tenant")
    settings = relationship("TenantSetting", back_populates="tenant", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_tenant_status", "status"),
        UniqueConstraint("subdomain", name=SUBDOMAIN_CONSTRAINT),
        {"schema": PUBLIC_SCHEMA},
    )

    @property
    def schema(self) -> str:
        """Name of this tenant's private PostgreSQL schema."""
        return schema_name_for(self.id)

    @property
    def is_accessible(self) -> bool:
        return bool(self.is_active) and self.status in ACCESSIBLE_STATUSES

    def __repr__(self):
        return f"<Tenant(id='{self.id}', slug='{self.slug}', status='{self.status}')>"


class TenantSetting(Base):
    __tablename__ = "tenant_settings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(36), ForeignKey(f"{PUBLIC_SCHEMA}.tenants.id", ondelete="CASCADE"), nullable=False)
    key = Column(String(100), nullable=False)
    value = Column(JSON, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    tenant = relationship("Tenant", back_populates="settings")

    __table_args__ = (
        UniqueConstraint("tenant_id", "key", name="uq_tenant_settings_tenant_key"),
        {"schema": PUBLIC_SCHEMA},
    )
