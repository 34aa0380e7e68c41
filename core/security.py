import hmac
import hashlib
import time
import uuid
from typing import Optional

from core.config import settings
from core.logger import logger


def _sign(data: str) -> str:
    secret = settings.AUTH_SECRET.encode()
    return hmac.new(secret, data.encode(), hashlib.sha256).hexdigest()


def issue_token(user_id: uuid.UUID, timestamp: Optional[int] = None) -> str:
    """
    Issue a signed bearer token for a user.
    Format: {user_id}:{timestamp}:{signature}
    """
    if timestamp is None:
        timestamp = int(time.time())
    data = f"{user_id}:{timestamp}"
    return f"{data}:{_sign(data)}"


def verify_token(token: str) -> Optional[uuid.UUID]:
    """
    Verify a bearer token and return the user id it was issued for.
    Returns None for malformed, expired or forged tokens.
    """
    if not token:
        return None

    parts = token.split(':')
    if len(parts) != 3:
        return None

    user_id_str, timestamp_str, signature = parts
    try:
        user_id = uuid.UUID(user_id_str)
        timestamp = int(timestamp_str)
    except ValueError:
        return None

    # Check expiration
    if int(time.time()) - timestamp > settings.TOKEN_TTL_SECONDS:
        logger.warning("Token expired", user_id=user_id_str)
        return None

    expected_signature = _sign(f"{user_id_str}:{timestamp_str}")
    if hmac.compare_digest(expected_signature, signature):
        return user_id

    logger.warning("Token signature mismatch", user_id=user_id_str)
    return None


def parse_bearer(authorization: Optional[str]) -> Optional[str]:
    """Extract the credential from an `Authorization: Bearer <token>` header."""
    if not authorization:
        return None
    scheme, _, credential = authorization.partition(' ')
    if scheme.lower() != 'bearer' or not credential.strip():
        return None
    return credential.strip()
