import logging
from decimal import Decimal
from typing import Any

from fastapi import APIRouter
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from app.api.deps import PoolDep
from app.api.routes.utils import error_message
from app.core.pool import DATABASE_ERRORS, cursor_to_dicts, execute

_logger = logging.getLogger(__name__)

CITIES_QUERY = "SELECT * FROM cities"

# NUMERIC columns go out as exact strings; a float would drop digits.
_ROW_ENCODERS: dict[Any, Any] = {Decimal: str}

router = APIRouter(prefix="/cities", tags=["cities"])


@router.get("", response_model=None)
def list_cities(pool: PoolDep) -> JSONResponse:
    """
    All rows of the cities table, one object per row keyed by column name.
    """
    try:
        with pool.connection() as conn:
            cur = execute(conn, CITIES_QUERY)
            try:
                rows = cursor_to_dicts(cur)
            finally:
                cur.close()
    except DATABASE_ERRORS as exc:
        _logger.exception("Error fetching data from /api/cities: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"message": "Error fetching cities data", "error": error_message(exc)},
        )
    return JSONResponse(
        status_code=200,
        content=jsonable_encoder(rows, custom_encoder=_ROW_ENCODERS),
    )
