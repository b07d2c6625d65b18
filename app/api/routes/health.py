import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.api.deps import PoolDep
from app.api.routes.utils import error_message
from app.core.pool import DATABASE_ERRORS, health_check

_logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/", response_model=None)
def database_health(pool: PoolDep) -> JSONResponse:
    """
    Readiness probe: one SELECT NOW() round trip through the pool.

    200 if the database answered, 500 with the error message otherwise.
    No retry.
    """
    try:
        health_check(pool)
    except DATABASE_ERRORS as exc:
        _logger.exception("Database connection error: %s", exc)
        return JSONResponse(
            status_code=500,
            content={
                "message": "Database connection failed",
                "status": "Error",
                "error": error_message(exc),
            },
        )
    return JSONResponse(
        status_code=200,
        content={"message": "Database connection successful", "status": "OK"},
    )
