from dataclasses import dataclass

from fastapi import Request
from loguru import logger

from coterate.adapters.imaging import ImageGenerator, MockImageGenerator
from coterate.adapters.store import DataAccessAdapter, create_store_client
from coterate.adapters.vision import MockVisionAdapter, VisionAdapter
from coterate.config import Settings


@dataclass
class Adapters:
    vision: VisionAdapter | MockVisionAdapter
    generator: ImageGenerator | MockImageGenerator
    store: DataAccessAdapter

    async def aclose(self) -> None:
        await self.vision.aclose()
        await self.generator.aclose()


def build_adapters(config: Settings) -> Adapters:
    """Construct every external client once, from explicit settings."""
    store = DataAccessAdapter(create_store_client(config.supabase_url, config.supabase_key))
    if config.mock_mode:
        logger.info("Mock mode enabled: vision and generation responses are canned")
        return Adapters(vision=MockVisionAdapter(), generator=MockImageGenerator(), store=store)

    return Adapters(
        vision=VisionAdapter(
            api_key=config.openai_api_key,
            model=config.vision_model,
            analysis_max_tokens=config.analysis_max_tokens,
            detection_max_tokens=config.detection_max_tokens,
        ),
        generator=ImageGenerator(
            api_key=config.stability_api_key,
            engine=config.stability_engine,
            api_host=config.stability_api_host,
            timeout=config.stability_timeout,
        ),
        store=store,
    )


def get_vision(request: Request) -> VisionAdapter | MockVisionAdapter:
    return request.app.state.adapters.vision


def get_generator(request: Request) -> ImageGenerator | MockImageGenerator:
    return request.app.state.adapters.generator


def get_store(request: Request) -> DataAccessAdapter:
    return request.app.state.adapters.store
