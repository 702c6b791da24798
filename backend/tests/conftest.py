import io

import pytest
from PIL import Image

from clickaudit.config import Settings


@pytest.fixture
def settings():
    return Settings(_env_file=None, render_previews=False)


@pytest.fixture
def preview_settings():
    return Settings(_env_file=None, render_previews=True)


@pytest.fixture
def png_bytes():
    def make(width=400, height=300, mode="RGB", color=(200, 30, 30)):
        buf = io.BytesIO()
        Image.new(mode, (width, height), color).save(buf, format="PNG")
        return buf.getvalue()
    return make


@pytest.fixture
def fake_rasterize(monkeypatch):
    """Replace the Cairo renderer; records every (svg, fit) it was asked to draw."""
    from clickaudit import svg_preview

    calls = []

    def rasterize(svg_source, fit):
        calls.append((svg_source, fit))
        return b"\x89PNG fake"

    monkeypatch.setattr(svg_preview, "rasterize", rasterize)
    return calls
