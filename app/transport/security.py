# app/transport/security.py
"""
Request authentication helpers.

- Telegram webhook: X-Telegram-Bot-Api-Secret-Token (constant-time compare)
- /metrics: Bearer METRICS_TOKEN when configured
"""
from __future__ import annotations

import hmac

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import settings
from app.infra.logging_config import get_logger

logger = get_logger(__name__)

TELEGRAM_SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"

metrics_bearer_scheme = HTTPBearer(auto_error=False)


def verify_telegram_secret(request: Request, expected: str | None) -> bool:
    """
    True if the secret header matches, or if no secret is configured.
    """
    if not expected:
        return True

    header_token = request.headers.get(TELEGRAM_SECRET_HEADER, "")
    if not header_token:
        logger.warning("Telegram webhook: missing %s header", TELEGRAM_SECRET_HEADER)
        return False

    return hmac.compare_digest(header_token, expected)


def require_metrics_auth(
    credentials: HTTPAuthorizationCredentials | None = Depends(metrics_bearer_scheme),
) -> None:
    """
    Dependency for /metrics.

    With METRICS_TOKEN set, a matching Bearer token is required; otherwise
    the endpoint is open (config validation warns about that).
    """
    if not settings.enable_metrics:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")

    if not settings.metrics_token:
        return

    if not credentials:
        logger.warning("Metrics endpoint accessed without token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not hmac.compare_digest(credentials.credentials, settings.metrics_token):
        logger.warning("Invalid metrics token attempt")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
