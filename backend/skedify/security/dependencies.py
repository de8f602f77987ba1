import logging

from fastapi import Header, HTTPException, status

from skedify.security.tokens import parse_access_token, resolve_token_secret

logger = logging.getLogger("skedify.security")


def require_provider(
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> int:
    """Verified provider id from the ``Authorization: Bearer <token>`` header."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error_code": "MISSING_TOKEN",
                "human_message": "No token provided.",
            },
        )

    secret = resolve_token_secret()
    if not secret:
        logger.error("Provider authentication failed: AUTH_TOKEN_SECRET is required in prod.")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error_code": "AUTH_NOT_CONFIGURED",
                "human_message": "Authentication is not configured.",
            },
        )

    try:
        return parse_access_token(authorization[len("Bearer "):].strip(), secret=secret)
    except ValueError as exc:
        logger.warning("Provider token rejected: %s", str(exc))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error_code": "INVALID_TOKEN",
                "human_message": "Invalid token.",
            },
        ) from exc
