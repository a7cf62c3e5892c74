from fastapi import HTTPException, Depends, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt
from typing import Dict, Any
from roundcaddy.config import settings
import structlog

logger = structlog.get_logger()

security = HTTPBearer()


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decode a bearer JWT and return the caller's identity.

    Args:
        token: Raw JWT string

    Returns:
        Dict with user_id, email, first_name, last_name and the full payload

    Raises:
        HTTPException: If the token is invalid, expired or has no subject
    """
    try:
        try:
            payload = jwt.decode(
                token,
                settings.auth_secret_key,
                algorithms=[settings.auth_algorithm],
                options={"verify_exp": True, "verify_aud": False}
            )
        except jwt.InvalidSignatureError:
            if not settings.allow_unverified_tokens:
                raise
            # Development only: accept tokens signed by another issuer
            logger.warning("Accepting unverified token", environment=settings.environment)
            payload = jwt.decode(
                token,
                options={"verify_signature": False, "verify_exp": True}
            )

        user_id = payload.get("sub")
        if not user_id:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token: missing user ID"
            )

        logger.debug("Token verified", user_id=user_id)

        return {
            "user_id": user_id,
            "email": payload.get("email"),
            "first_name": payload.get("given_name"),
            "last_name": payload.get("family_name"),
            "full_payload": payload
        }

    except HTTPException:
        raise
    except jwt.ExpiredSignatureError:
        logger.warning("Token expired")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired"
        )
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token"
        )


async def get_current_user_id(credentials: HTTPAuthorizationCredentials = Depends(security)) -> str:
    """
    Get the current user ID from the JWT token.

    Args:
        credentials: HTTP Bearer token from Authorization header

    Returns:
        User ID string
    """
    user_data = decode_token(credentials.credentials)
    return user_data["user_id"]
