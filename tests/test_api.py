import io

import numpy as np
from fastapi.testclient import TestClient
from PIL import Image

from palette_shift.config import settings
from palette_shift.main import app

client = TestClient(app)


def _make_test_image(width=32, height=24, seed=0) -> bytes:
    img = Image.fromarray(
        np.random.default_rng(seed).integers(0, 256, (height, width, 3), dtype=np.uint8)
    )
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def _decode(content: bytes) -> np.ndarray:
    return np.array(Image.open(io.BytesIO(content)).convert("RGB"))


class TestHealthEndpoint:
    def test_returns_200(self):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestPalettesEndpoint:
    def test_returns_palettes(self):
        response = client.get("/api/palettes")
        assert response.status_code == 200
        slugs = {p["slug"] for p in response.json()["palettes"]}
        assert "nord" in slugs

    def test_palette_structure(self):
        for p in client.get("/api/palettes").json()["palettes"]:
            assert {"slug", "name", "colors", "hex", "tags"} <= set(p)


class TestShiftEndpoint:
    def test_default_request(self):
        img_bytes = _make_test_image()
        response = client.post(
            "/api/shift",
            files={"image": ("test.png", img_bytes, "image/png")},
        )
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.headers["X-Shift-Blend"] == "70"
        assert response.headers["X-Shift-Palette"].startswith("#2e3440,")
        assert int(response.headers["X-Shift-Processing-Ms"]) >= 0
        assert _decode(response.content).shape == (24, 32, 3)

    def test_zero_blend_returns_same_pixels(self):
        img_bytes = _make_test_image(seed=1)
        response = client.post(
            "/api/shift",
            files={"image": ("test.png", img_bytes, "image/png")},
            data={"blend_percent": "0"},
        )
        assert response.status_code == 200
        np.testing.assert_array_equal(_decode(response.content), _decode(img_bytes))

    def test_custom_colors_full_blend(self):
        img_bytes = _make_test_image(seed=2)
        response = client.post(
            "/api/shift",
            files={"image": ("test.png", img_bytes, "image/png")},
            data={"blend_percent": "100", "colors": "#000000"},
        )
        assert response.status_code == 200
        assert response.headers["X-Shift-Palette"] == "#000000"
        assert not _decode(response.content).any()

    def test_fast_rounding(self):
        img = Image.new("RGB", (2, 2), (255, 255, 255))
        buf = io.BytesIO()
        img.save(buf, format="PNG")
        response = client.post(
            "/api/shift",
            files={"image": ("white.png", buf.getvalue(), "image/png")},
            data={"blend_percent": "50", "colors": "#000000", "fast": "true"},
        )
        assert response.status_code == 200
        assert (_decode(response.content) == 127).all()

    def test_blend_over_100_rejected(self):
        response = client.post(
            "/api/shift",
            files={"image": ("test.png", _make_test_image(), "image/png")},
            data={"blend_percent": "101"},
        )
        assert response.status_code == 422
        assert response.json()["detail"]["error"] == "invalid_parameter"

    def test_unknown_palette_name(self):
        response = client.post(
            "/api/shift",
            files={"image": ("test.png", _make_test_image(), "image/png")},
            data={"palette_name": "nonexistent-palette"},
        )
        assert response.status_code == 422
        assert response.json()["detail"]["error"] == "invalid_parameter"

    def test_invalid_custom_color(self):
        response = client.post(
            "/api/shift",
            files={"image": ("test.png", _make_test_image(), "image/png")},
            data={"colors": "#000000,#12345"},
        )
        assert response.status_code == 422
        assert response.json()["detail"]["error"] == "invalid_color"

    def test_too_many_custom_colors(self, monkeypatch):
        monkeypatch.setattr(settings, "max_palette_colors", 4)
        response = client.post(
            "/api/shift",
            files={"image": ("test.png", _make_test_image(), "image/png")},
            data={"colors": ",".join(["#000000"] * 5)},
        )
        assert response.status_code == 422
        assert response.json()["detail"]["error"] == "invalid_parameter"

    def test_oversized_image(self):
        large_data = b"\x00" * (11 * 1024 * 1024)
        response = client.post(
            "/api/shift",
            files={"image": ("test.png", large_data, "image/png")},
        )
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "image_too_large"

    def test_undecodable_image(self):
        response = client.post(
            "/api/shift",
            files={"image": ("test.png", b"not an image", "image/png")},
        )
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "invalid_format"

    def test_unsupported_content_type(self):
        response = client.post(
            "/api/shift",
            files={"image": ("test.txt", b"hello", "text/plain")},
        )
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "invalid_format"
