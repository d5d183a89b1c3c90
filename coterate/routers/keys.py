from fastapi import APIRouter
from loguru import logger

from coterate.config import settings
from coterate.errors import CoterateError
from coterate.models.response import KeysResponse

router = APIRouter(prefix="/api")


@router.get("/get-keys", response_model=KeysResponse)
async def get_keys() -> KeysResponse:
    """Hand the OpenAI key to the browser client.

    Off unless EXPOSE_CLIENT_KEYS is set: every provider call already runs
    server-side, so only legacy clients that call OpenAI directly need this.
    """
    if not settings.expose_client_keys:
        logger.warning("Rejected key request: client key exposure is disabled")
        raise CoterateError("API key exposure is disabled", status_code=403)
    if not settings.openai_api_key:
        raise CoterateError("OpenAI API key is not configured in the server environment", status_code=404)
    return KeysResponse(openai_key=settings.openai_api_key)
