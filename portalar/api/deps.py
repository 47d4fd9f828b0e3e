from typing import Any, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import structlog

from portalar.core.context import AppContext
from portalar.core.errors import AuthenticationError, RateLimitError
from portalar.middleware.rate_limit import client_ip
from portalar.services.analytics import AnalyticsService
from portalar.services.content import ContentService
from portalar.services.summarizer import Summarizer

logger = structlog.get_logger()

bearer_scheme = HTTPBearer(auto_error=False)


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_content_service(context: AppContext = Depends(get_context)) -> ContentService:
    return context.content


def get_analytics_service(context: AppContext = Depends(get_context)) -> AnalyticsService:
    return context.analytics


def get_summarizer(context: AppContext = Depends(get_context)) -> Summarizer:
    return context.summarizer


async def require_admin(
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
        context: AppContext = Depends(get_context)
) -> dict[str, Any]:
    """Claims of a valid admin bearer token"""
    token = credentials.credentials if credentials else None
    try:
        return context.auth.verify(token)
    except AuthenticationError as e:
        logger.warning(
            "admin_auth_rejected",
            reason=e.reason,
            path=request.url.path,
            ip=client_ip(request)
        )
        raise


async def analytics_rate_limit(request: Request, context: AppContext = Depends(get_context)) -> None:
    limiter = context.limiters.analytics
    key = f"ip:{client_ip(request)}"
    if not await limiter.is_allowed(key):
        logger.warning("analytics_rate_limit_exceeded", key=key)
        raise RateLimitError("Too many analytics events. Please slow down.", retry_after=limiter.period)
