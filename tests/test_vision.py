import base64
import io
import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from openai import APIConnectionError, APIStatusError
from PIL import Image

from coterate.adapters.vision import MockVisionAdapter, VisionAdapter, prepare_image
from coterate.errors import ConfigurationError, UpstreamError, ValidationError
from coterate.models.response import BoundingBox, ComponentAttributes, DetectedComponent

from .conftest import TINY_PNG

OPENAI_URL = "https://api.openai.com/v1/chat/completions"


def _completion(content: str) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=content))]
    return response


def _openai_client(content: str = "", side_effect=None) -> MagicMock:
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=_completion(content), side_effect=side_effect)
    return client


def _status_error(status: int, message: str) -> APIStatusError:
    request = httpx.Request("POST", OPENAI_URL)
    return APIStatusError(message, response=httpx.Response(status, request=request), body=None)


def test_prepare_image_accepts_data_uri_and_bare_base64():
    bare = prepare_image(TINY_PNG)
    prefixed = prepare_image(f"data:image/png;base64,{TINY_PNG}")
    assert bare.startswith("data:image/jpeg;base64,")
    assert bare == prefixed


def test_prepare_image_downscales_large_screenshots():
    buf = io.BytesIO()
    Image.new("RGBA", (3000, 1500), (255, 0, 0, 255)).save(buf, format="PNG")
    uri = prepare_image(base64.b64encode(buf.getvalue()).decode())

    img = Image.open(io.BytesIO(base64.b64decode(uri.split(",", 1)[1])))
    assert img.size == (1500, 750)
    assert img.format == "JPEG"


def test_prepare_image_rejects_garbage():
    with pytest.raises(ValidationError):
        prepare_image("not base64 at all!")
    with pytest.raises(ValidationError):
        prepare_image(base64.b64encode(b"hello").decode())


@pytest.mark.parametrize("length", [16, 20, 28, 41, 48])
def test_prepare_image_rejects_truncated_png(length):
    truncated = base64.b64decode(TINY_PNG)[:length]
    with pytest.raises(ValidationError):
        prepare_image(base64.b64encode(truncated).decode())


def test_prepare_image_ignores_line_breaks():
    wrapped = "\n".join(TINY_PNG[i : i + 20] for i in range(0, len(TINY_PNG), 20))
    assert prepare_image(wrapped) == prepare_image(TINY_PNG)


@pytest.mark.asyncio
async def test_analyze_sends_prompt_and_image():
    client = _openai_client("- Increase contrast")
    adapter = VisionAdapter(client=client, model="gpt-4o")

    analysis = await adapter.analyze(TINY_PNG, "Make it dark mode")

    assert analysis == "- Increase contrast"
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4o"
    assert kwargs["max_tokens"] == 1500
    text_part, image_part = kwargs["messages"][1]["content"]
    assert "Visual hierarchy" in text_part["text"]
    assert "Additional requirements: Make it dark mode" in text_part["text"]
    assert image_part["image_url"]["url"].startswith("data:image/jpeg;base64,")


@pytest.mark.asyncio
async def test_missing_key_fails_before_any_call():
    adapter = VisionAdapter(api_key="")
    with pytest.raises(ConfigurationError):
        await adapter.analyze(TINY_PNG)
    with pytest.raises(ConfigurationError):
        await adapter.detect_components(TINY_PNG)


@pytest.mark.asyncio
async def test_detect_components_parses_json_response():
    payload = {"components": [{"type": "button", "boundingBox": {"x": 120, "y": 5, "width": 10, "height": 4}}]}
    client = _openai_client(json.dumps(payload))
    adapter = VisionAdapter(client=client)

    components = await adapter.detect_components(TINY_PNG)

    assert len(components) == 1
    assert components[0].bounding_box.x == 100
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["response_format"] == {"type": "json_object"}
    assert kwargs["temperature"] == 0.2


@pytest.mark.asyncio
async def test_detect_components_degrades_on_bad_json():
    adapter = VisionAdapter(client=_openai_client("I cannot help with that."))
    assert await adapter.detect_components(TINY_PNG) == []


@pytest.mark.asyncio
async def test_detect_components_degrades_on_connection_error():
    error = APIConnectionError(request=httpx.Request("POST", OPENAI_URL))
    adapter = VisionAdapter(client=_openai_client(side_effect=error))
    assert await adapter.detect_components(TINY_PNG) == []


@pytest.mark.asyncio
async def test_upstream_status_is_propagated():
    adapter = VisionAdapter(client=_openai_client(side_effect=_status_error(429, "Rate limit reached")))

    with pytest.raises(UpstreamError) as exc_info:
        await adapter.detect_components(TINY_PNG)

    assert exc_info.value.status_code == 429
    assert "Rate limit reached" in exc_info.value.message


@pytest.mark.asyncio
async def test_analysis_connection_error_is_fatal():
    error = APIConnectionError(request=httpx.Request("POST", OPENAI_URL))
    adapter = VisionAdapter(client=_openai_client(side_effect=error))

    with pytest.raises(UpstreamError) as exc_info:
        await adapter.analyze(TINY_PNG)

    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_mock_adapter_returns_canned_components():
    adapter = MockVisionAdapter()
    components = await adapter.detect_components(TINY_PNG)
    assert [c.id for c in components] == ["component-0", "component-1", "component-2"]
    assert "Visual hierarchy" in await adapter.analyze(TINY_PNG)


def _detected(component_id: str, kind: str) -> DetectedComponent:
    return DetectedComponent(
        id=component_id,
        type=kind,
        confidence=0.9,
        bounding_box=BoundingBox(),
        attributes=ComponentAttributes(text=kind),
    )


@pytest.mark.asyncio
async def test_analyze_components_uses_model_suggestions():
    components = [_detected("component-0", "button"), _detected("component-1", "input")]
    payload = {
        "improvements": [
            {"componentId": "component-0", "improvements": {"borderRadius": 12}, "reasoning": "Softer corners"},
        ]
    }
    client = _openai_client(json.dumps(payload))
    adapter = VisionAdapter(client=client)

    suggestions = await adapter.analyze_components(components, TINY_PNG)

    assert [s.component_id for s in suggestions] == ["component-0", "component-1"]
    assert suggestions[0].improvements == {"borderRadius": 12}
    assert suggestions[0].reasoning == "Softer corners"
    assert suggestions[1].improvements["borderColor"] == "#dadce0"
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["temperature"] == 0.3
    assert '"id": "component-1"' in kwargs["messages"][1]["content"][0]["text"]


@pytest.mark.asyncio
async def test_analyze_components_degrades_on_upstream_error():
    components = [_detected("component-0", "Navbar")]
    adapter = VisionAdapter(client=_openai_client(side_effect=_status_error(500, "Server error")))

    suggestions = await adapter.analyze_components(components, TINY_PNG)

    assert len(suggestions) == 1
    assert suggestions[0].improvements["backgroundColor"] == "#f8f9fa"


@pytest.mark.asyncio
async def test_analyze_components_skips_call_without_components():
    client = _openai_client("{}")
    assert await VisionAdapter(client=client).analyze_components([], TINY_PNG) == []
    client.chat.completions.create.assert_not_awaited()


@pytest.mark.asyncio
async def test_analyze_components_requires_key():
    with pytest.raises(ConfigurationError):
        await VisionAdapter(api_key="").analyze_components([_detected("component-0", "button")], TINY_PNG)


def test_require_configured():
    with pytest.raises(ConfigurationError):
        VisionAdapter(api_key="").require_configured()
    VisionAdapter(client=_openai_client()).require_configured()
    MockVisionAdapter().require_configured()
