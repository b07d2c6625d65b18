from typing import Annotated

from fastapi import Depends, Request

from app.core.pool import PoolManager


def get_pool(request: Request) -> PoolManager:
    """The pool created by the app lifespan; shared by every request."""
    return request.app.state.pool


PoolDep = Annotated[PoolManager, Depends(get_pool)]
