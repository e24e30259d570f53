import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import relationship

from physiohub.constants.roles import DEFAULT_ROLE
from physiohub.database import PUBLIC_SCHEMA, Base


# Login identity. Email is unique per tenant, not globally: the same address
# may hold unrelated accounts in two tenants.
class GlobalUser(Base):
    __tablename__ = "global_users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(36), ForeignKey(f"{PUBLIC_SCHEMA}.tenants.id", ondelete="CASCADE"), nullable=False)
    email = Column(String(254), nullable=False)
    name = Column(String(200), nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(30), nullable=False, default=DEFAULT_ROLE.value)
    is_active = Column(Boolean, nullable=False, default=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    tenant = relationship("Tenant", back_populates="users", lazy="joined")

    __table_args__ = (
        UniqueConstraint("tenant_id", "email", name="uq_global_users_tenant_email"),
        Index("idx_global_users_tenant_id", "tenant_id"),
        {"schema": PUBLIC_SCHEMA},
    )

    def __repr__(self):
        return f"<GlobalUser(id='{self.id}', email='{self.email}', tenant_id='{self.tenant_id}')>"
