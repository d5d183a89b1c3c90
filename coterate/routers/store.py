from typing import Any

from fastapi import APIRouter, Depends, Query
from loguru import logger

from coterate.adapters.store import DataAccessAdapter
from coterate.dependencies import get_store
from coterate.errors import ValidationError
from coterate.models.request import StoreRequest

router = APIRouter(prefix="/api")

READ_OPERATIONS = ("getItems", "getItem")


# Sync handlers: the Supabase client blocks, so FastAPI runs these in its threadpool.
@router.post("/supabase-proxy")
def store_proxy(
    request: StoreRequest,
    store: DataAccessAdapter = Depends(get_store),
) -> dict[str, Any]:
    logger.info("Store request: {op} on {table}", op=request.operation, table=request.table)
    return store.execute(request)


@router.get("/supabase-proxy")
def store_proxy_read(
    operation: str | None = None,
    table: str | None = None,
    id: str | None = None,
    user_id: str | None = Query(default=None, alias="userId"),
    store: DataAccessAdapter = Depends(get_store),
) -> dict[str, Any]:
    if operation is not None and operation not in READ_OPERATIONS:
        raise ValidationError(f"Only {', '.join(READ_OPERATIONS)} are supported over GET")
    return store.execute(StoreRequest(operation=operation, table=table, id=id, user_id=user_id))
