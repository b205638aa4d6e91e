"""Liveness, readiness and token checks."""

import time

from fastapi import APIRouter, Response, status

from src.api.deps import CurrentUser
from src.core.config import get_settings
from src.core.supabase import check_database_connection
from src.schemas.auth import AuthenticatedResponse
from src.schemas.common import CheckResult, HealthResponse, HealthStatus, ReadinessResponse

router = APIRouter(tags=["health"])


def _configuration_checks() -> list[CheckResult]:
    """Report integrations that only degrade the service when missing."""
    settings = get_settings()
    configured = {
        "payments": bool(settings.stripe_secret_key and settings.stripe_webhook_secret),
        "email": bool(settings.resend_api_key),
    }
    return [
        CheckResult(
            name=name,
            healthy=ok,
            required=False,
            error=None if ok else "Not configured",
        )
        for name, ok in configured.items()
    ]


def _overall_status(checks: list[CheckResult]) -> HealthStatus:
    if not all(check.healthy for check in checks if check.required):
        return HealthStatus.UNHEALTHY
    if not all(check.healthy for check in checks):
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY


@router.get("/health", response_model=HealthResponse, summary="Liveness check")
async def health_check() -> HealthResponse:
    """Return 200 while the process is serving requests."""
    return HealthResponse(status=HealthStatus.HEALTHY, environment=get_settings().app_env)


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    responses={
        200: {"description": "Database reachable; payments or email may be degraded"},
        503: {"description": "Database unreachable"},
    },
    summary="Readiness check",
)
async def readiness_check(response: Response) -> ReadinessResponse:
    """Check the database and report payment and email configuration.

    Only the database decides readiness. Missing Stripe or Resend keys
    report ``degraded`` so catalog pages keep serving.

    Args:
        response: Used to set 503 when the database is unreachable.

    Returns:
        ReadinessResponse: Overall status and each check.
    """
    start_time = time.perf_counter()
    db_result = await check_database_connection()
    latency_ms = (time.perf_counter() - start_time) * 1000

    checks = [
        CheckResult(
            name="database",
            healthy=db_result["healthy"],
            latency_ms=round(latency_ms, 2),
            error=db_result.get("error"),
        ),
        *_configuration_checks(),
    ]

    overall = _overall_status(checks)
    if overall == HealthStatus.UNHEALTHY:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return ReadinessResponse(status=overall, checks=checks)


@router.get(
    "/health/auth",
    response_model=AuthenticatedResponse,
    summary="Authenticated health check",
    responses={401: {"description": "Authentication required or invalid token"}},
)
async def authenticated_check(user: CurrentUser) -> AuthenticatedResponse:
    """Echo the verified token context."""
    return AuthenticatedResponse(
        authenticated=True,
        user_id=str(user.user_id),
        email=user.email,
        role=user.role,
        expires_at=user.expires_at,
    )
