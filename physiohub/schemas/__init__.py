from .auth import (
    AuthResult,
    LoginRequest,
    LogoutRequest,
    RefreshRequest,
    TokenClaims,
    TokenPair,
    UserInfo,
)
from .tenant import TenantInfo, TenantPublicInfo, TenantRegister, TenantRegistered

__all__ = [
    "AuthResult",
    "LoginRequest",
    "LogoutRequest",
    "RefreshRequest",
    "TenantInfo",
    "TenantPublicInfo",
    "TenantRegister",
    "TenantRegistered",
    "TokenClaims",
    "TokenPair",
    "UserInfo",
]
