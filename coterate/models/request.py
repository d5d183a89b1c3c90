from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Accepts and emits camelCase keys while exposing snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ImageRequest(WireModel):
    # Optional so a missing image is reported as a 400 by the handler, not a 422.
    image_base64: str | None = None
    custom_prompt: str | None = None


class GenerationRequest(WireModel):
    analysis: str | None = None
    custom_prompt: str | None = None


class StoreRequest(WireModel):
    operation: str | None = None
    table: str | None = None
    data: Any = None
    id: str | int | None = None
    user_id: str | None = None
