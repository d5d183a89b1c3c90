from typing import Any, Literal

from pydantic import Field

from coterate.models.request import WireModel

ComponentState = Literal["default", "hover", "active", "disabled"]


class BoundingBox(WireModel):
    """Component region as percentages (0-100) of the source image, top-left anchored."""

    x: float = Field(default=0, ge=0, le=100)
    y: float = Field(default=0, ge=0, le=100)
    width: float = Field(default=10, ge=0, le=100)
    height: float = Field(default=10, ge=0, le=100)


class ComponentAttributes(WireModel):
    background_color: str | None = None
    text_color: str | None = None
    border_radius: float | str | None = None
    font_size: float | str | None = None
    padding: str | None = None
    text: str | None = None
    state: ComponentState = "default"


class DetectedComponent(WireModel):
    id: str
    type: str
    confidence: float = Field(ge=0, le=1)
    bounding_box: BoundingBox
    attributes: ComponentAttributes


class DetectionResponse(WireModel):
    components: list[DetectedComponent]
    image: str


class AnalysisResponse(WireModel):
    analysis: str


class ImprovementResponse(WireModel):
    analysis: str
    image: str


class GenerationResponse(WireModel):
    image: str


class KeysResponse(WireModel):
    openai_key: str


class ComponentImprovement(WireModel):
    """Suggested style changes for one detected component, keyed by component id."""

    component_id: str
    improvements: dict[str, Any]
    reasoning: str


class ComponentImprovementResponse(WireModel):
    components: list[DetectedComponent]
    improvements: list[ComponentImprovement]
