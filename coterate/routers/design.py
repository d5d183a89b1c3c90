from fastapi import APIRouter, Depends
from loguru import logger

from coterate.adapters.imaging import ImageGenerator, MockImageGenerator
from coterate.adapters.vision import MockVisionAdapter, VisionAdapter
from coterate.dependencies import get_generator, get_vision
from coterate.errors import ValidationError
from coterate.models.request import GenerationRequest, ImageRequest
from coterate.models.response import (
    AnalysisResponse,
    ComponentImprovementResponse,
    DetectionResponse,
    GenerationResponse,
    ImprovementResponse,
)
from coterate.pipeline import improve_components, improve_ui

router = APIRouter(prefix="/api")

Vision = VisionAdapter | MockVisionAdapter
Generator = ImageGenerator | MockImageGenerator


def _require_image(request: ImageRequest) -> str:
    if not request.image_base64:
        raise ValidationError("Image data is required")
    return request.image_base64


@router.post("/detect-components", response_model=DetectionResponse)
async def detect_components(
    request: ImageRequest,
    vision: Vision = Depends(get_vision),
) -> DetectionResponse:
    image = _require_image(request)
    components = await vision.detect_components(image)
    return DetectionResponse(components=components, image=image)


@router.post("/openai", response_model=AnalysisResponse)
async def analyze(
    request: ImageRequest,
    vision: Vision = Depends(get_vision),
) -> AnalysisResponse:
    image = _require_image(request)
    analysis = await vision.analyze(image, request.custom_prompt)
    return AnalysisResponse(analysis=analysis)


@router.post("/improve-ui", response_model=ImprovementResponse)
async def improve(
    request: ImageRequest,
    vision: Vision = Depends(get_vision),
    generator: Generator = Depends(get_generator),
) -> ImprovementResponse:
    image = _require_image(request)
    logger.info("Improve UI request (custom prompt: {has_prompt})", has_prompt=bool(request.custom_prompt))
    return await improve_ui(vision, generator, image, request.custom_prompt)


@router.post("/stability", response_model=GenerationResponse)
async def generate(
    request: GenerationRequest,
    generator: Generator = Depends(get_generator),
) -> GenerationResponse:
    if not request.analysis:
        raise ValidationError("Analysis data is required")
    image = await generator.generate(request.analysis, request.custom_prompt)
    return GenerationResponse(image=image)


@router.post("/improve-components", response_model=ComponentImprovementResponse)
async def improve_detected_components(
    request: ImageRequest,
    vision: Vision = Depends(get_vision),
) -> ComponentImprovementResponse:
    image = _require_image(request)
    return await improve_components(vision, image)
