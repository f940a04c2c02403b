"""
HTTP API.
"""

import io
import json
import zipfile

import cv2
import numpy as np
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.concurrency import run_in_threadpool

from conftest import create_test_image, encode_image
from xmpcube.api.main import app
from xmpcube.api.middleware.error_handler import ErrorHandlerMiddleware
from xmpcube.api.routers import extract
from xmpcube.core.properties import ImageProperties
from xmpcube.core.xmp import generate_xmp


@pytest.fixture(scope="module")
def client():
    return TestClient(app)


@pytest.fixture
def grey_upload():
    return {"image": ("grey.png", encode_image(create_test_image(value=100), '.png'), "image/png")}


def preset_xmp(**values):
    props = ImageProperties(version="15.0", process_version="15.0", white_balance="As Shot", **values)
    return generate_xmp("preset", props).encode("utf-8")


# ============================================
# INFO / HEALTH
# ============================================

def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "xmp-cube API"
    assert "image/jpeg" in data["supported_formats"]
    assert "POST /extract-xmp-cube" in data["endpoints"]


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] in ("healthy", "degraded")
    assert data["components"]["opencv"]["installed"] is True


def test_request_id_is_echoed(client):
    response = client.get("/", headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"
    assert "X-Response-Time-Ms" in response.headers


def test_metrics_count_requests(client):
    client.get("/")
    data = client.get("/metrics").json()
    assert data["total_requests"] >= 1
    assert "GET /" in data["top_endpoints"]
    assert set(data["latency_ms"]) == {"p50", "p95", "p99"}


# ============================================
# EXTRACT
# ============================================

def test_extract_json(client, grey_upload):
    response = client.post("/extract-xmp-cube", files=grey_upload)
    assert response.status_code == 200
    data = response.json()
    assert data["filename"] == "grey.png"
    assert data["xmp_filename"] == "grey.xmp"
    assert data["cube_filename"] == "grey.cube"
    assert data["properties"]["temperature"] == 5500.0
    assert data["properties"]["has_settings"] is True
    assert data["xmp"].startswith("<?xml")
    assert "X-Processing-Time-Ms" in response.headers
    assert response.headers["X-Extractor"].startswith("xmp-cube v")
    assert float(response.headers["X-Processing-Time-Ms"]) >= 0


def test_extract_xmp_download(client, grey_upload):
    response = client.post("/extract-xmp-cube?format=xmp", files=grey_upload)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/rdf+xml")
    assert 'filename="grey.xmp"' in response.headers["content-disposition"]
    assert b"crs:Exposure" in response.content


def test_extract_cube_download(client, grey_upload):
    response = client.post("/extract-xmp-cube?format=cube", files=grey_upload)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert response.text.splitlines()[5] == "LUT_3D_SIZE 32"


def test_extract_zip(client, grey_upload):
    response = client.post("/extract-xmp-cube?format=zip", files=grey_upload)
    assert response.status_code == 200
    assert 'filename="grey_preset.zip"' in response.headers["content-disposition"]
    with zipfile.ZipFile(io.BytesIO(response.content)) as zf:
        assert sorted(zf.namelist()) == ["grey.cube", "grey.xmp"]


def test_extract_decodes_off_the_event_loop(client, grey_upload, monkeypatch):
    offloaded = []

    async def recording(func, *args, **kwargs):
        offloaded.append(getattr(func, "__name__", repr(func)))
        return await run_in_threadpool(func, *args, **kwargs)

    monkeypatch.setattr(extract, "run_in_threadpool", recording)
    assert client.post("/extract-xmp-cube", files=grey_upload).status_code == 200
    assert {"decode_upload", "read_image_metadata", "analyze"} <= set(offloaded)


def test_extract_unknown_format_is_rejected(client, grey_upload):
    response = client.post("/extract-xmp-cube?format=pdf", files=grey_upload)
    assert response.status_code == 422


def test_extract_rejects_unsupported_type(client):
    files = {"image": ("notes.txt", b"hello", "text/plain")}
    response = client.post("/extract-xmp-cube", files=files)
    assert response.status_code == 400
    assert "Unsupported image type" in response.json()["detail"]


def test_extract_rejects_undecodable_image(client):
    files = {"image": ("broken.jpg", b"not really a jpeg", "image/jpeg")}
    response = client.post("/extract-xmp-cube", files=files)
    assert response.status_code == 400


# ============================================
# APPLY
# ============================================

def test_apply_exposure(client, grey_upload):
    files = dict(grey_upload, xmp=("bright.xmp", preset_xmp(exposure=100), "application/octet-stream"))
    response = client.post("/apply-xmp", files=files)
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/jpeg"
    assert 'filename="processed_grey.jpg"' in response.headers["content-disposition"]

    applied = json.loads(response.headers["X-Applied-Adjustments"])
    assert applied["exposure"] == 100

    decoded = cv2.imdecode(np.frombuffer(response.content, np.uint8), cv2.IMREAD_COLOR)
    assert abs(float(decoded.mean()) - 200) < 3


def test_apply_requires_xmp_extension(client, grey_upload):
    files = dict(grey_upload, xmp=("preset.txt", preset_xmp(), "text/xml"))
    response = client.post("/apply-xmp", files=files)
    assert response.status_code == 400
    assert response.json()["detail"] == "File must have .xmp extension"


def test_apply_rejects_xmp_without_required_elements(client, grey_upload):
    xmp = generate_xmp("preset", ImageProperties()).replace("crs:WhiteBalance", "crs:Balance")
    files = dict(grey_upload, xmp=("preset.xmp", xmp.encode("utf-8"), "application/xml"))
    response = client.post("/apply-xmp", files=files)
    assert response.status_code == 400
    assert "missing required elements: WhiteBalance" in response.json()["detail"]


def test_apply_rejects_non_xml(client, grey_upload):
    files = dict(grey_upload, xmp=("preset.xmp", b"just text", "application/xml"))
    response = client.post("/apply-xmp", files=files)
    assert response.status_code == 400


# ============================================
# ANALYZE
# ============================================

def test_local_adjustments_on_flat_image(client, grey_upload):
    response = client.post("/analyze/local-adjustments", files=grey_upload)
    assert response.status_code == 200
    data = response.json()
    assert (data["width"], data["height"]) == (100, 100)
    assert data["counts"] == {"gradients": 0, "radials": 0, "brushes": 0}


# ============================================
# ERRORS
# ============================================

def test_unhandled_errors_become_json():
    broken = FastAPI()
    broken.add_middleware(ErrorHandlerMiddleware)

    @broken.get("/boom")
    async def boom():
        raise RuntimeError("kaboom")

    response = TestClient(broken).get("/boom")
    assert response.status_code == 500
    data = response.json()
    assert data["error"] == "internal_server_error"
    assert data["message"] == "kaboom"
    assert data["path"] == "/boom"
