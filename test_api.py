"""
HTTP-level tests for the preview API.

Source image downloads are patched out so no test touches the network.
"""

import logging
from io import BytesIO
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from og_preview.main import create_app
from og_preview.services.errors import EncodeError, FetchError, StorageError
from og_preview.services.storage import LocalPreviewStore, PreviewStore, get_preview_store

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

PAYLOAD = {"title": "Launch day", "content": "- Fast\n- Reliable\n**Open source**"}
IMAGE_URL = "https://images.example.com/cover.png"


def _png(color=(255, 0, 0), size=(400, 300)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


class FailingStore(PreviewStore):
    def save(self, result, key):
        raise StorageError("bucket unavailable")


@pytest.fixture
def client(monkeypatch, tmp_path):
    monkeypatch.setenv("OG_STORAGE_DIR", str(tmp_path))
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _assert_preview_png(response):
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.headers["cache-control"] == "s-maxage=31536000, public"
    image = Image.open(BytesIO(response.content))
    assert image.format == "PNG"
    assert image.size == (1200, 630)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/api/v1/health").json() == {"status": "ok", "api_version": "v1"}


def test_list_variants(client):
    response = client.get("/api/v1/variants")

    assert response.status_code == 200
    assert response.json() == ["Default", "ImageBackground", "CornerThumbnail", "SplitView"]


def test_render_default_preview(client):
    response = client.post("/api/v1/previews", json=PAYLOAD)

    _assert_preview_png(response)
    logger.info("✓ Default preview rendered (%d bytes)", len(response.content))


@pytest.mark.parametrize("variant", ["ImageBackground", "CornerThumbnail", "SplitView"])
def test_render_with_source_image(client, variant):
    body = {**PAYLOAD, "variant": variant, "sourceImage": IMAGE_URL}
    with patch("og_preview.services.renderer.fetch_image", return_value=_png()) as mock_fetch:
        response = client.post("/api/v1/previews", json=body)

    _assert_preview_png(response)
    mock_fetch.assert_called_once()
    assert mock_fetch.call_args.args[0] == IMAGE_URL


def test_unreachable_image_still_renders(client):
    body = {**PAYLOAD, "variant": "ImageBackground", "sourceImage": IMAGE_URL}
    with patch("og_preview.services.renderer.fetch_image", side_effect=FetchError("timed out")):
        degraded = client.post("/api/v1/previews", json=body)
    baseline = client.post("/api/v1/previews", json={**PAYLOAD, "variant": "ImageBackground"})

    _assert_preview_png(degraded)
    assert degraded.content == baseline.content


@pytest.mark.parametrize(
    "body",
    [
        {"content": "- Fast"},
        {"title": "Launch"},
        {"title": "   ", "content": "- Fast"},
        {"title": "Launch", "content": ""},
        {**PAYLOAD, "variant": "Bogus"},
        {**PAYLOAD, "sourceImage": "not a url"},
    ],
)
def test_invalid_payloads_are_rejected(client, body):
    response = client.post("/api/v1/previews", json=body)
    assert response.status_code == 422


def test_encode_failure_is_a_server_error(client):
    with patch("og_preview.services.compositor.encode_png", side_effect=EncodeError("boom")):
        response = client.post("/api/v1/previews", json=PAYLOAD)

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to generate preview image."


def test_publish_stores_preview(client, tmp_path):
    store = LocalPreviewStore(base_dir=tmp_path, public_base_url="https://og.example.com")
    client.app.dependency_overrides[get_preview_store] = lambda: store

    response = client.post("/api/v1/previews/publish", json={**PAYLOAD, "variant": "SplitView"})

    assert response.status_code == 201
    data = response.json()
    assert data["variant"] == "SplitView"
    assert data["has_photo"] is False
    assert (data["width"], data["height"]) == (1200, 630)
    assert data["url"].startswith("https://og.example.com/static/previews/")

    stored = list((tmp_path / "previews").glob("*.png"))
    assert len(stored) == 1
    assert data["url"].endswith(stored[0].name)


def test_published_preview_is_served_from_static(client, tmp_path):
    store = LocalPreviewStore(base_dir=tmp_path, public_base_url="")
    client.app.dependency_overrides[get_preview_store] = lambda: store

    url = client.post("/api/v1/previews/publish", json=PAYLOAD).json()["url"]
    served = client.get(url)

    assert served.status_code == 200
    assert Image.open(BytesIO(served.content)).size == (1200, 630)


def test_publish_storage_failure(client):
    client.app.dependency_overrides[get_preview_store] = FailingStore

    response = client.post("/api/v1/previews/publish", json=PAYLOAD)

    assert response.status_code == 502
    assert response.json()["detail"] == "Failed to store preview image."


def test_legacy_endpoint_without_image(client):
    with patch("og_preview.services.renderer.fetch_image") as mock_fetch:
        response = client.post("/generate-og-image", json=PAYLOAD)

    _assert_preview_png(response)
    mock_fetch.assert_not_called()


def test_legacy_endpoint_uses_image_background(client):
    body = {**PAYLOAD, "imageUrl": IMAGE_URL}
    with patch("og_preview.services.renderer.fetch_image", return_value=_png((0, 0, 0))) as mock_fetch:
        with_image = client.post("/generate-og-image", json=body)
    without_image = client.post("/generate-og-image", json=PAYLOAD)

    _assert_preview_png(with_image)
    mock_fetch.assert_called_once()
    assert with_image.content != without_image.content


def test_legacy_endpoint_with_broken_image(client):
    body = {**PAYLOAD, "imageUrl": IMAGE_URL}
    with patch("og_preview.services.renderer.fetch_image", side_effect=FetchError("404")):
        response = client.post("/generate-og-image", json=body)

    _assert_preview_png(response)


def test_cors_preflight(client):
    response = client.options(
        "/api/v1/previews",
        headers={"Origin": "https://blog.example.com", "Access-Control-Request-Method": "POST"},
    )

    assert response.status_code == 200
    assert "access-control-allow-origin" in response.headers
