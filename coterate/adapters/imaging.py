import httpx
from loguru import logger

from coterate.errors import ConfigurationError, ParseError, UpstreamError
from coterate.parsing import extract_improvements, to_data_uri
from coterate.prompts import build_generation_prompt

MISSING_KEY_MESSAGE = "Stability API key is missing. Please check your environment variables."

# Fixed text-to-image parameters
IMAGE_WIDTH = 1024
IMAGE_HEIGHT = 1024
CFG_SCALE = 7
STEPS = 30

# 1x1 transparent PNG returned by the mock generator
PLACEHOLDER_PNG = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNk+M9QDwADhgGAWjR9awAAAABJRU5ErkJggg=="
)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or "Unknown error"
    if isinstance(body, dict):
        return body.get("message") or body.get("name") or "Unknown error"
    return "Unknown error"


class ImageGenerator:
    """Stability AI text-to-image client.

    Failures propagate: an upstream error status is passed through to the
    caller instead of falling back to the source image.
    """

    def __init__(
        self,
        api_key: str = "",
        engine: str = "stable-diffusion-xl-1024-v1-0",
        api_host: str = "https://api.stability.ai",
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 120.0,
    ) -> None:
        self.api_key = api_key
        self.engine = engine
        self.api_host = api_host.rstrip("/")
        self.http_client = http_client or httpx.AsyncClient(timeout=timeout)

    @property
    def url(self) -> str:
        return f"{self.api_host}/v1/generation/{self.engine}/text-to-image"

    def require_configured(self) -> None:
        if not self.api_key:
            raise ConfigurationError(MISSING_KEY_MESSAGE)

    async def generate(self, analysis_text: str, extra_prompt: str | None = None) -> str:
        """Generate an improved design from an analysis; returns a PNG data URI."""
        self.require_configured()

        prompt = build_generation_prompt(extract_improvements(analysis_text), extra_prompt)
        payload = {
            "text_prompts": [{"text": prompt, "weight": 1}],
            "cfg_scale": CFG_SCALE,
            "height": IMAGE_HEIGHT,
            "width": IMAGE_WIDTH,
            "samples": 1,
            "steps": STEPS,
        }
        logger.debug("Calling Stability {engine} ({chars} char prompt)", engine=self.engine, chars=len(prompt))

        try:
            response = await self.http_client.post(
                self.url,
                json=payload,
                headers={
                    "Accept": "application/json",
                    "Authorization": f"Bearer {self.api_key}",
                },
            )
        except httpx.HTTPError as e:
            raise UpstreamError(f"Failed to generate improved UI design: {e}") from e

        if response.is_error:
            message = _error_message(response)
            logger.error("Stability API error {status}: {message}", status=response.status_code, message=message)
            raise UpstreamError(f"Stability API error: {message}", status_code=response.status_code)

        try:
            artifact = response.json()["artifacts"][0]
            image = artifact["base64"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ParseError("Stability API returned no image artifact") from e

        if artifact.get("finishReason") not in (None, "SUCCESS"):
            logger.warning("Stability finished with {reason}", reason=artifact.get("finishReason"))
        return to_data_uri(image)

    async def aclose(self) -> None:
        await self.http_client.aclose()


class MockImageGenerator:
    """Returns a placeholder PNG for mock mode."""

    def require_configured(self) -> None:
        return None

    async def generate(self, analysis_text: str, extra_prompt: str | None = None) -> str:
        logger.debug("Mock generation for: {improvements}", improvements=extract_improvements(analysis_text))
        return to_data_uri(PLACEHOLDER_PNG)

    async def aclose(self) -> None:
        return None
