from collections.abc import Callable
from typing import Any

from loguru import logger
from postgrest.exceptions import APIError
from supabase import Client, create_client

from coterate.casing import to_camel, to_snake
from coterate.errors import ConfigurationError, MissingParameterError, StoreError, ValidationError
from coterate.models.request import StoreRequest

MISSING_CREDENTIALS_MESSAGE = "Supabase URL or key is missing. Please check your environment variables."

# Parameters each operation needs beyond operation and table
REQUIRED_FIELDS = {
    "getItems": (),
    "getItem": ("id",),
    "createItem": ("data",),
    "updateItem": ("id", "data"),
    "deleteItem": ("id",),
}


def create_store_client(url: str, key: str) -> Client | None:
    """Build the Supabase client at startup; None when credentials are not configured."""
    if not (url and key):
        logger.warning("Supabase credentials not configured; store operations will fail")
        return None
    return create_client(url, key)


def _require(request: StoreRequest, *names: str) -> None:
    for name in names:
        if getattr(request, name) in (None, ""):
            raise MissingParameterError(name)


class DataAccessAdapter:
    """Generic CRUD over Supabase tables with camelCase <-> snake_case remapping."""

    def __init__(self, client: Client | None) -> None:
        self.client = client
        self._operations: dict[str, Callable[[StoreRequest], dict[str, Any]]] = {
            "getItems": self.get_items,
            "getItem": self.get_item,
            "createItem": self.create_item,
            "updateItem": self.update_item,
            "deleteItem": self.delete_item,
        }

    def execute(self, request: StoreRequest) -> dict[str, Any]:
        """Validate and dispatch ``request.operation``; store failures raise StoreError."""
        _require(request, "operation", "table")
        handler = self._operations.get(request.operation)
        if handler is None:
            raise ValidationError(f"Invalid operation: {request.operation}")
        _require(request, *REQUIRED_FIELDS[request.operation])

        if self.client is None:
            raise ConfigurationError(MISSING_CREDENTIALS_MESSAGE)

        logger.debug("{op} on {table}", op=request.operation, table=request.table)
        try:
            return handler(request)
        except APIError as e:
            message = e.message or str(e)
            logger.error(
                "Store error in {op} ({table}): {message}",
                op=request.operation,
                table=request.table,
                message=message,
            )
            raise StoreError(message) from e

    def get_items(self, request: StoreRequest) -> dict[str, Any]:
        query = self.client.table(request.table).select("*")
        if request.user_id:
            query = query.eq("user_id", request.user_id)
        return {"data": to_camel(query.execute().data)}

    def get_item(self, request: StoreRequest) -> dict[str, Any]:
        response = self.client.table(request.table).select("*").eq("id", request.id).single().execute()
        return {"data": to_camel(response.data)}

    def create_item(self, request: StoreRequest) -> dict[str, Any]:
        response = self.client.table(request.table).insert(to_snake(request.data)).execute()
        return {"data": to_camel(response.data)}

    def update_item(self, request: StoreRequest) -> dict[str, Any]:
        response = (
            self.client.table(request.table)
            .update(to_snake(request.data))
            .eq("id", request.id)
            .execute()
        )
        return {"data": to_camel(response.data)}

    def delete_item(self, request: StoreRequest) -> dict[str, Any]:
        self.client.table(request.table).delete().eq("id", request.id).execute()
        return {"success": True}
