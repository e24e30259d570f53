from .tenant import ACCESSIBLE_STATUSES, Tenant, TenantPlan, TenantSetting, TenantStatus
from .user import GlobalUser

__all__ = [
    "ACCESSIBLE_STATUSES",
    "GlobalUser",
    "Tenant",
    "TenantPlan",
    "TenantSetting",
    "TenantStatus",
]
