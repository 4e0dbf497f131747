"""
Health Check Routes - System health and monitoring endpoints.

These endpoints are used for:
1. Load balancer health checks
2. Kubernetes liveness/readiness probes
3. Quick system status verification
"""
from fastapi import APIRouter, Depends, Response

from nestchat import __version__
from nestchat.core.circuit_breaker import BreakerState, CircuitBreaker, get_llm_circuit_breaker
from nestchat.core.logging_config import get_logger
from nestchat.database.connection import DatabaseConnection, get_database
from nestchat.models.chat import HealthResponse

logger = get_logger(__name__)

router = APIRouter(
    prefix="/health",
    tags=["Health"],
)


@router.get(
    "",
    response_model=HealthResponse,
    summary="Health check endpoint",
    description="""
    Returns 200 OK while the API process is up.

    Does not touch the database or the LLM provider; use /health/ready
    for dependency checks.
    """
)
async def health_check() -> HealthResponse:
    """Liveness: the API is running and responsive."""
    logger.debug("Health check requested")
    return HealthResponse(status="healthy", version=__version__)


@router.get(
    "/ready",
    response_model=HealthResponse,
    summary="Readiness check endpoint",
    description="""
    Reports database connectivity and the LLM circuit breaker state.

    - `ready`: database reachable, breaker closed
    - `degraded`: database reachable, breaker open or half-open
      (replies will be fallback texts until the provider recovers)
    - `not_ready` (503): database unreachable
    """
)
def readiness_check(
    response: Response,
    db: DatabaseConnection = Depends(get_database),
    breaker: CircuitBreaker = Depends(get_llm_circuit_breaker),
) -> HealthResponse:
    database_ok = db.check_connection()
    breaker_stats = breaker.stats()

    if not database_ok:
        status = "not_ready"
        response.status_code = 503
    elif breaker_stats["state"] != BreakerState.CLOSED.value:
        status = "degraded"
    else:
        status = "ready"

    logger.debug(f"Readiness check: {status}")

    return HealthResponse(
        status=status,
        version=__version__,
        checks={
            "database": "ok" if database_ok else "unreachable",
            "llm_circuit_breaker": breaker_stats,
        }
    )
