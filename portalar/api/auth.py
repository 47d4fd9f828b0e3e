# /api/auth/*

from typing import Any

from fastapi import APIRouter, Depends, Request
import structlog

from portalar.api.deps import get_context, require_admin
from portalar.core.context import AppContext
from portalar.core.errors import AuthenticationError, RateLimitError
from portalar.middleware.rate_limit import client_ip
from portalar.schemas.auth import AdminUser, LoginRequest, LoginResponse, VerifyResponse

logger = structlog.get_logger()
router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
async def login(
        body: LoginRequest,
        request: Request,
        context: AppContext = Depends(get_context)
):
    """
    Exchange the admin password for a bearer token.

    Only failed attempts count toward the login limit; once it is reached
    every attempt is refused until the window passes.
    """
    limiter = context.limiters.auth
    key = f"ip:{client_ip(request)}"

    if await limiter.count(key) >= limiter.rate:
        logger.warning("login_rate_limit_exceeded", key=key)
        raise RateLimitError("Too many login attempts. Please try again later.", retry_after=limiter.period)

    try:
        token = await context.auth.login(body.password)
    except AuthenticationError:
        failures = await limiter.hit(key)
        logger.warning("admin_login_failed", key=key, failures=failures)
        raise

    return LoginResponse(
        token=token,
        expires_in=context.auth.expires_in,
        user=AdminUser(username="admin", role="admin")
    )


@router.get("/verify", response_model=VerifyResponse)
async def verify(claims: dict[str, Any] = Depends(require_admin)):
    """Check whether the presented token is still valid"""
    return VerifyResponse(
        user=AdminUser(
            username=claims.get("username", claims["sub"]),
            role=claims.get("role", "admin")
        )
    )
