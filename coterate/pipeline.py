from loguru import logger

from coterate.adapters.imaging import ImageGenerator, MockImageGenerator
from coterate.adapters.vision import MockVisionAdapter, VisionAdapter
from coterate.errors import ParseError
from coterate.models.response import ComponentImprovementResponse, ImprovementResponse


async def improve_ui(
    vision: VisionAdapter | MockVisionAdapter,
    generator: ImageGenerator | MockImageGenerator,
    image_data: str,
    custom_prompt: str | None = None,
) -> ImprovementResponse:
    """Analyze a screenshot, then generate an improved design from that analysis.

    Both providers must be configured before the first call is made. Generation
    depends on the analysis text, so any analysis failure (including an empty
    answer) aborts before the image call is made.
    """
    vision.require_configured()
    generator.require_configured()

    logger.info("Analyzing UI design")
    analysis = await vision.analyze(image_data, custom_prompt)
    if not analysis.strip():
        raise ParseError("Vision model returned an empty analysis")

    logger.info("Generating improved UI")
    image = await generator.generate(analysis, custom_prompt)
    return ImprovementResponse(analysis=analysis, image=image)


async def improve_components(
    vision: VisionAdapter | MockVisionAdapter,
    image_data: str,
) -> ComponentImprovementResponse:
    """Detect components, then suggest targeted style changes for each one."""
    components = await vision.detect_components(image_data)
    if not components:
        logger.warning("No components detected; nothing to improve")
        return ComponentImprovementResponse(components=[], improvements=[])

    improvements = await vision.analyze_components(components, image_data)
    logger.info(
        "Suggested improvements for {count} components",
        count=len(improvements),
    )
    return ComponentImprovementResponse(components=components, improvements=improvements)
