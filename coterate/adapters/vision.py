import base64
import binascii
import io
import json

from loguru import logger
from openai import APIConnectionError, APIStatusError, AsyncOpenAI
from PIL import Image

from coterate.errors import ConfigurationError, UpstreamError, ValidationError
from coterate.models.response import ComponentImprovement, DetectedComponent
from coterate.parsing import (
    fallback_suggestion,
    parse_component_improvements,
    parse_components,
    strip_data_uri,
)
from coterate.prompts import (
    ANALYSIS_SYSTEM_PROMPT,
    COMPONENT_ANALYSIS_SYSTEM_PROMPT,
    DETECTION_PROMPT,
    DETECTION_SYSTEM_PROMPT,
    build_analysis_prompt,
    build_component_analysis_prompt,
)

# Longest side of images sent to the vision model; larger screenshots only cost tokens.
MAX_IMAGE_DIMENSION = 1500

MISSING_KEY_MESSAGE = "OpenAI API key is missing. Please check your environment variables."


def _optimize_image(image_bytes: bytes, max_dim: int = MAX_IMAGE_DIMENSION) -> bytes:
    """Resize and convert to JPEG for smaller payloads. Returns JPEG bytes."""
    img = Image.open(io.BytesIO(image_bytes))
    w, h = img.size
    if max(w, h) > max_dim:
        scale = max_dim / max(w, h)
        new_size = (max(1, int(w * scale)), max(1, int(h * scale)))
        img = img.resize(new_size, Image.LANCZOS)
        logger.debug("Resized image from {w}x{h} to {nw}x{nh}", w=w, h=h, nw=new_size[0], nh=new_size[1])
    if img.mode != "RGB":
        img = img.convert("RGB")
    buf = io.BytesIO()
    img.save(buf, format="JPEG", quality=85)
    return buf.getvalue()


def prepare_image(image_data: str) -> str:
    """Normalize a bare or data-URI base64 screenshot into a JPEG data URI.

    Raises ValidationError when the payload is not base64 or not an image.
    """
    # Pasted payloads often carry line breaks
    payload = "".join(strip_data_uri(image_data).split())
    try:
        raw = base64.b64decode(payload, validate=True)
        jpeg = _optimize_image(raw)
    # OSError covers truncated files that Pillow only notices while decoding
    except (binascii.Error, ValueError, OSError, Image.DecompressionBombError) as e:
        raise ValidationError("Image data is not a valid base64-encoded image") from e
    return "data:image/jpeg;base64," + base64.b64encode(jpeg).decode("ascii")


class VisionAdapter:
    """OpenAI chat-completions client for analysis, component detection and component suggestions."""

    def __init__(
        self,
        api_key: str = "",
        model: str = "gpt-4o",
        analysis_max_tokens: int = 1500,
        detection_max_tokens: int = 4000,
        client: AsyncOpenAI | None = None,
    ) -> None:
        if client is None and api_key:
            client = AsyncOpenAI(api_key=api_key)
        self.client = client
        self.model = model
        self.analysis_max_tokens = analysis_max_tokens
        self.detection_max_tokens = detection_max_tokens

    def _require_client(self) -> AsyncOpenAI:
        if self.client is None:
            raise ConfigurationError(MISSING_KEY_MESSAGE)
        return self.client

    def require_configured(self) -> None:
        self._require_client()

    async def _complete(self, system_prompt: str, prompt: str, image_uri: str, **params) -> str:
        client = self._require_client()
        logger.debug("Calling {model} ({params})", model=self.model, params=params)
        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": prompt},
                            {"type": "image_url", "image_url": {"url": image_uri, "detail": "high"}},
                        ],
                    },
                ],
                **params,
            )
        except APIStatusError as e:
            logger.error("OpenAI API error {status}: {message}", status=e.status_code, message=e.message)
            raise UpstreamError(f"OpenAI API error: {e.message}", status_code=e.status_code) from e
        return response.choices[0].message.content or ""

    async def analyze(self, image_data: str, prompt: str | None = None) -> str:
        """Return the model's free-text improvement analysis for a screenshot."""
        self._require_client()
        image_uri = prepare_image(image_data)
        try:
            return await self._complete(
                ANALYSIS_SYSTEM_PROMPT,
                build_analysis_prompt(prompt),
                image_uri,
                max_tokens=self.analysis_max_tokens,
            )
        except APIConnectionError as e:
            raise UpstreamError(f"Failed to analyze UI design: {e}") from e

    async def detect_components(self, image_data: str) -> list[DetectedComponent]:
        """Return detected components; connection failures and bad JSON give []."""
        self._require_client()
        image_uri = prepare_image(image_data)
        try:
            content = await self._complete(
                DETECTION_SYSTEM_PROMPT,
                DETECTION_PROMPT,
                image_uri,
                max_tokens=self.detection_max_tokens,
                temperature=0.2,
                response_format={"type": "json_object"},
            )
        except APIConnectionError as e:
            logger.warning("Component detection unavailable, returning no components: {err}", err=e)
            return []

        components = parse_components(content)
        logger.info("Detected {count} components", count=len(components))
        return components

    async def analyze_components(
        self, components: list[DetectedComponent], image_data: str
    ) -> list[ComponentImprovement]:
        """Suggest style changes per component.

        Any upstream failure or unusable answer degrades to type-keyed default
        styles, so every component always gets a suggestion. A missing key is
        still a configuration error.
        """
        if not components:
            return []
        self._require_client()
        image_uri = prepare_image(image_data)
        summary = [
            {
                "id": c.id,
                "type": c.type,
                "boundingBox": c.bounding_box.model_dump(),
                "attributes": {
                    "backgroundColor": c.attributes.background_color,
                    "textColor": c.attributes.text_color,
                    "text": c.attributes.text or "",
                },
            }
            for c in components
        ]
        try:
            content = await self._complete(
                COMPONENT_ANALYSIS_SYSTEM_PROMPT,
                build_component_analysis_prompt(summary),
                image_uri,
                max_tokens=self.detection_max_tokens,
                temperature=0.3,
                response_format={"type": "json_object"},
            )
        except (APIConnectionError, UpstreamError) as e:
            logger.warning("Component analysis unavailable, using default styles: {err}", err=e)
            return [fallback_suggestion(c) for c in components]

        return parse_component_improvements(content, components)

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.close()


MOCK_ANALYSIS = """## Visual hierarchy
- Make the primary call-to-action larger and higher contrast
- Group related form fields under a clear heading

## Typography
- Increase body text to at least 16px for readability

## Accessibility
- Raise text contrast to meet WCAG AA"""

MOCK_DETECTION = {
    "components": [
        {
            "type": "Navbar",
            "confidence": 0.95,
            "boundingBox": {"x": 0, "y": 0, "width": 100, "height": 8},
            "attributes": {"backgroundColor": "#2c3e50", "textColor": "#ffffff", "text": "Navigation"},
        },
        {
            "type": "Input",
            "confidence": 0.9,
            "boundingBox": {"x": 20, "y": 20, "width": 60, "height": 5},
            "attributes": {
                "backgroundColor": "#ffffff",
                "textColor": "#333333",
                "borderRadius": "4px",
                "text": "Email",
            },
        },
        {
            "type": "Button",
            "confidence": 0.9,
            "boundingBox": {"x": 20, "y": 30, "width": 15, "height": 5},
            "attributes": {
                "backgroundColor": "#3498db",
                "textColor": "#ffffff",
                "borderRadius": "4px",
                "text": "Submit",
            },
        },
    ]
}


class MockVisionAdapter:
    """Canned vision responses for mock mode; makes no network calls and needs no key."""

    async def analyze(self, image_data: str, prompt: str | None = None) -> str:
        if prompt:
            return f"{MOCK_ANALYSIS}\n\n## Requested\n- {prompt}"
        return MOCK_ANALYSIS

    def require_configured(self) -> None:
        return None

    async def detect_components(self, image_data: str) -> list[DetectedComponent]:
        return parse_components(json.dumps(MOCK_DETECTION))

    async def analyze_components(
        self, components: list[DetectedComponent], image_data: str
    ) -> list[ComponentImprovement]:
        return [fallback_suggestion(c) for c in components]

    async def aclose(self) -> None:
        return None
