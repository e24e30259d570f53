"""
Custom Exception Classes for PhysioHub

Every error the tenancy subsystem raises carries an HTTP status code and a
machine-readable ``ErrorCode`` so clients can branch on it (for example,
silently refresh on ``TOKEN_EXPIRED`` but force a new login on
``CROSS_TENANT_TOKEN``).
"""

from enum import Enum
from typing import Any

from fastapi import status


class ErrorCode(str, Enum):
    """Machine-readable error codes returned in the ``code`` field."""

    # Tenant resolution
    TENANT_NOT_IDENTIFIED = "TENANT_NOT_IDENTIFIED"
    TENANT_NOT_FOUND = "TENANT_NOT_FOUND"
    TENANT_INACTIVE = "TENANT_INACTIVE"

    # Authentication
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    TOKEN_MISSING = "TOKEN_MISSING"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    TOKEN_MALFORMED = "TOKEN_MALFORMED"
    CROSS_TENANT_TOKEN = "CROSS_TENANT_TOKEN"

    # Authorization
    PERMISSION_DENIED = "PERMISSION_DENIED"

    # Schema management
    SCHEMA_NOT_FOUND = "SCHEMA_NOT_FOUND"
    INVALID_SCHEMA_NAME = "INVALID_SCHEMA_NAME"
    SCHEMA_PROVISIONING_FAILED = "SCHEMA_PROVISIONING_FAILED"
    CONFIRMATION_REQUIRED = "CONFIRMATION_REQUIRED"

    # Registration conflicts
    DUPLICATE_SLUG = "DUPLICATE_SLUG"
    DUPLICATE_TENANT = "DUPLICATE_TENANT"

    # Generic
    VALIDATION_FAILED = "VALIDATION_FAILED"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class PhysioHubError(Exception):
    """Base exception class for all PhysioHub errors"""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


# ============================================================================
# Tenant Resolution Exceptions
# ============================================================================


class TenantNotIdentifiedError(PhysioHubError):
    """Raised when a request carries no usable tenant signal"""

    def __init__(
        self,
        message: str = "Tenant not identified. Use a subdomain, the X-Tenant-Slug header or the tenant parameter.",
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code=ErrorCode.TENANT_NOT_IDENTIFIED,
        )


class TenantNotFoundError(PhysioHubError):
    """Raised when no tenant matches the requested slug or subdomain"""

    def __init__(self, slug: str | None = None, message: str | None = None):
        if message is None:
            message = f"Tenant '{slug}' not found" if slug else "Tenant not found"
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_code=ErrorCode.TENANT_NOT_FOUND,
            details={"slug": slug} if slug else {},
        )


class TenantInactiveError(PhysioHubError):
    """Raised when the tenant exists but its status does not allow access"""

    def __init__(self, slug: str, tenant_status: str):
        super().__init__(
            message=f"Tenant '{slug}' is {tenant_status}. Please contact support.",
            status_code=status.HTTP_403_FORBIDDEN,
            error_code=ErrorCode.TENANT_INACTIVE,
            details={"slug": slug, "status": tenant_status},
        )


# ============================================================================
# Authentication & Authorization Exceptions
# ============================================================================


class AuthenticationError(PhysioHubError):
    """Raised when authentication fails"""

    def __init__(
        self,
        message: str = "Authentication failed",
        error_code: ErrorCode = ErrorCode.INVALID_CREDENTIALS,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code=error_code,
            details=details,
        )


class InvalidCredentialsError(AuthenticationError):
    """Raised for an unknown email and for a wrong password alike"""

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message=message, error_code=ErrorCode.INVALID_CREDENTIALS)


class TokenMissingError(AuthenticationError):
    """Raised when a protected route is called without a bearer token"""

    def __init__(self, message: str = "Authorization token required"):
        super().__init__(message=message, error_code=ErrorCode.TOKEN_MISSING)


class TokenExpiredError(AuthenticationError):
    """Raised when JWT token has expired"""

    def __init__(self, message: str = "Token has expired"):
        super().__init__(message=message, error_code=ErrorCode.TOKEN_EXPIRED)


class InvalidTokenError(AuthenticationError):
    """Raised when JWT token is invalid"""

    def __init__(self, message: str = "Invalid or malformed token"):
        super().__init__(message=message, error_code=ErrorCode.TOKEN_MALFORMED)


TokenMalformedError = InvalidTokenError


class CrossTenantTokenError(AuthenticationError):
    """Raised when a valid token is presented for a tenant it was not issued for"""

    def __init__(self, message: str = "Token is not valid for this tenant"):
        super().__init__(message=message, error_code=ErrorCode.CROSS_TENANT_TOKEN)


TokenAudienceMismatchError = CrossTenantTokenError


class PermissionDeniedError(PhysioHubError):
    """Raised when user lacks permission for an action"""

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        required_permission: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        error_details = details or {}
        if required_permission:
            error_details["required_permission"] = required_permission
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code=ErrorCode.PERMISSION_DENIED,
            details=error_details,
        )


# ============================================================================
# Schema Exceptions
# ============================================================================


class InvalidSchemaNameError(PhysioHubError):
    """Raised when a schema identifier does not match the tenant naming rule"""

    def __init__(self, schema: str):
        super().__init__(
            message="Invalid tenant schema name",
            error_code=ErrorCode.INVALID_SCHEMA_NAME,
            details={"schema": schema},
        )


class SchemaNotFoundError(PhysioHubError):
    """Raised when switching into a schema that does not exist"""

    def __init__(self, schema: str):
        super().__init__(
            message=f"Tenant schema '{schema}' does not exist",
            error_code=ErrorCode.SCHEMA_NOT_FOUND,
            details={"schema": schema},
        )


class SchemaProvisioningError(PhysioHubError):
    """Raised when creating or verifying a tenant schema fails"""

    def __init__(self, schema: str, message: str = "Tenant schema provisioning failed"):
        super().__init__(
            message=message,
            error_code=ErrorCode.SCHEMA_PROVISIONING_FAILED,
            details={"schema": schema},
        )


class ConfirmationRequiredError(PhysioHubError):
    """Raised when a destructive operation is called without explicit confirmation"""

    def __init__(self, operation: str):
        super().__init__(
            message=f"Explicit confirmation required for '{operation}'",
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code=ErrorCode.CONFIRMATION_REQUIRED,
            details={"operation": operation},
        )


# ============================================================================
# Registration Exceptions
# ============================================================================


class DuplicateSlugError(PhysioHubError):
    """Raised when a tenant slug is already taken"""

    def __init__(self, slug: str):
        super().__init__(
            message=f"Slug '{slug}' is already in use",
            status_code=status.HTTP_409_CONFLICT,
            error_code=ErrorCode.DUPLICATE_SLUG,
            details={"slug": slug},
        )


class DuplicateTenantError(PhysioHubError):
    """Raised when another tenant already owns the subdomain or identity"""

    def __init__(self, field: str, value: Any):
        super().__init__(
            message=f"A tenant with {field} '{value}' already exists",
            status_code=status.HTTP_409_CONFLICT,
            error_code=ErrorCode.DUPLICATE_TENANT,
            details={"field": field, "value": value},
        )


# ============================================================================
# Validation & Lookup Exceptions
# ============================================================================


class ValidationError(PhysioHubError):
    """Raised when input validation fails"""

    def __init__(self, message: str, field: str | None = None, details: dict[str, Any] | None = None):
        error_details = details or {}
        if field:
            error_details["field"] = field
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code=ErrorCode.VALIDATION_FAILED,
            details=error_details,
        )


class ResourceNotFoundError(PhysioHubError):
    """Base class for resource not found errors"""

    def __init__(self, resource_type: str, resource_id: Any | None = None):
        message = f"{resource_type} not found"
        if resource_id is not None:
            message = f"{resource_type} with id '{resource_id}' not found"
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_code=ErrorCode.RESOURCE_NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )
