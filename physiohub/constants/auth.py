"""
Authentication Constants

Configuration constants for JWT authentication.
"""

import logging

from decouple import config

logger = logging.getLogger(__name__)

ALGORITHM = config("JWT_ALGORITHM", default="HS256")

# Bearer scheme prefix expected in the Authorization header
BEARER_PREFIX = "Bearer "

# Claims every access token must carry
REQUIRED_ACCESS_CLAIMS = ("sub", "tenant_id", "tenant_slug", "role", "aud", "iss", "exp")

# Claims every refresh token must carry
REQUIRED_REFRESH_CLAIMS = ("sub", "tenant_id", "aud", "iss", "exp")

if ALGORITHM != "HS256":
    logger.warning("JWT_ALGORITHM=%s overrides the default HS256 signing algorithm", ALGORITHM)
