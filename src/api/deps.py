"""FastAPI dependency injection functions."""

import logging
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from src.api.middleware.auth import AuthError, AuthErrorCode, decode_jwt
from src.api.middleware.error_handler import RateLimitError
from src.core.config import get_settings
from src.core.rate_limiter import get_rate_limiter
from src.core.stripe import PaymentGateway, get_payment_gateway
from src.schemas.auth import CallerIdentity, UserContext

logger = logging.getLogger(__name__)


def _extract_bearer_token(authorization: str) -> str:
    """Pull the token out of a ``Bearer <token>`` header.

    Raises:
        HTTPException: 401 if the header has the wrong shape.
    """
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format. Expected: Bearer <token>",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return parts[1]


async def get_optional_user(
    authorization: Annotated[str | None, Header()] = None,
) -> UserContext | None:
    """Extract the current user if a valid bearer token is present.

    Storefront routes always allow guests, so a missing, malformed or
    expired token yields None instead of a 401.

    Args:
        authorization: Optional Authorization header value.

    Returns:
        UserContext | None: The user context if authenticated, None otherwise.
    """
    if not authorization:
        return None

    try:
        token = _extract_bearer_token(authorization)
        payload = decode_jwt(token)
    except HTTPException:
        logger.debug("Ignoring malformed Authorization header")
        return None
    except AuthError as e:
        if e.code == AuthErrorCode.NOT_CONFIGURED:
            logger.debug("Bearer token ignored: signing key not configured")
        else:
            logger.info("Ignoring untrusted bearer token: %s", e.message)
        return None

    return payload.to_user_context()


OptionalUser = Annotated[UserContext | None, Depends(get_optional_user)]


async def get_caller_identity(
    user: OptionalUser,
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_email: Annotated[str | None, Header()] = None,
) -> CallerIdentity:
    """Resolve the caller's identity from its sources in priority order.

    1. Verified bearer token (subject and email claims)
    2. ``X-User-Id`` / ``X-User-Email`` headers set by the storefront client

    Args:
        user: Verified token user, if any.
        x_user_id: Optional owner id header.
        x_user_email: Optional email header.

    Returns:
        CallerIdentity: Possibly anonymous caller identity.
    """
    token_identity = CallerIdentity(user_id=user.user_id, email=user.email) if user else None
    header_identity = CallerIdentity(user_id=x_user_id, email=x_user_email)
    return CallerIdentity.from_sources(token_identity, header_identity)


Caller = Annotated[CallerIdentity, Depends(get_caller_identity)]
Gateway = Annotated[PaymentGateway, Depends(get_payment_gateway)]


async def check_verify_rate_limit(order_id: str) -> None:
    """Throttle payment verification polling per order.

    Args:
        order_id: Order being polled (path parameter).

    Raises:
        RateLimitError: If the order has been polled too often.
    """
    settings = get_settings()
    limiter = get_rate_limiter()

    allowed, _, retry_after = await limiter.check_and_increment(
        f"verify:{order_id}",
        max_requests=settings.rate_limit_verify_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )

    if not allowed:
        raise RateLimitError(
            message="Too many payment verification requests. Please wait before polling again.",
            retry_after=retry_after,
            limit=settings.rate_limit_verify_requests,
        )


VerifyRateLimit = Annotated[None, Depends(check_verify_rate_limit)]
