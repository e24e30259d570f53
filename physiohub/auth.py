import logging

from passlib.context import CryptContext

# Initialize logging
logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Verified against when the email is unknown so both failure paths cost one bcrypt round
_DUMMY_HASH = pwd_context.hash("physiohub-timing-equaliser")


# Function to hash a password
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


# Function to verify a password
def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    if not hashed_password:
        pwd_context.verify(plain_password, _DUMMY_HASH)
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        logger.warning("Stored password hash is not a recognised bcrypt hash")
        return False


def dummy_verify(plain_password: str) -> None:
    """Spend the same time as a real verify without a stored hash."""
    pwd_context.verify(plain_password, _DUMMY_HASH)
