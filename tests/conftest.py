from unittest.mock import AsyncMock, MagicMock

import pytest

from coterate.adapters.store import DataAccessAdapter
from coterate.dependencies import get_generator, get_store, get_vision
from coterate.main import app
from coterate.models.response import BoundingBox, ComponentAttributes, DetectedComponent
from tests import TEST_API_KEY

# Minimal valid 1x1 PNG as base64
TINY_PNG = "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNk+M9QDwADhgGAWjR9awAAAABJRU5ErkJggg=="

MOCK_ANALYSIS = """## Visual hierarchy
- Enlarge the primary button
- Add spacing between sections
1. Increase text contrast"""

MOCK_COMPONENTS = [
    DetectedComponent(
        id="component-0",
        type="button",
        confidence=0.95,
        bounding_box=BoundingBox(x=10, y=20, width=30, height=5),
        attributes=ComponentAttributes(background_color="#4285f4", text="Submit"),
    )
]

GENERATED_IMAGE = f"data:image/png;base64,{TINY_PNG}"


def supabase_client(data=None) -> MagicMock:
    """Fake Supabase client whose query builder chains back to itself."""
    client = MagicMock()
    query = client.table.return_value
    for method in ("select", "eq", "insert", "update", "delete", "single"):
        getattr(query, method).return_value = query
    query.execute.return_value = MagicMock(data=data)
    return client


@pytest.fixture
def mock_vision():
    """Override the vision adapter with canned analysis and components."""
    vision = MagicMock()
    vision.analyze = AsyncMock(return_value=MOCK_ANALYSIS)
    vision.detect_components = AsyncMock(return_value=MOCK_COMPONENTS)
    app.dependency_overrides[get_vision] = lambda: vision
    yield vision
    app.dependency_overrides.pop(get_vision, None)


@pytest.fixture
def mock_generator():
    generator = MagicMock()
    generator.generate = AsyncMock(return_value=GENERATED_IMAGE)
    app.dependency_overrides[get_generator] = lambda: generator
    yield generator
    app.dependency_overrides.pop(get_generator, None)


@pytest.fixture
def store_client():
    """Real DataAccessAdapter over a fake Supabase client."""
    client = supabase_client(data=[{"id": "p1", "user_id": "u1", "base_image": "img"}])
    app.dependency_overrides[get_store] = lambda: DataAccessAdapter(client)
    yield client
    app.dependency_overrides.pop(get_store, None)


@pytest.fixture(autouse=True)
def _set_api_key(monkeypatch):
    """Patch the settings object API key for all tests."""
    from coterate.config import settings

    monkeypatch.setattr(settings, "api_key", TEST_API_KEY)
