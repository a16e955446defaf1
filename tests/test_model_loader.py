"""
Tests for model loading and the session registry.

HTTP is faked by patching requests.get; no network access is needed.
"""

import pytest
from requests.structures import CaseInsensitiveDict

from facescrub import model_loader
from facescrub.model_loader import (
    ModelLoadError,
    SessionRegistry,
    fetch_model_bytes,
    load_face_model,
)

MODEL_URL = "https://models.example.com/face.onnx"


class FakeResponse:
    def __init__(self, status_code=200, content=b"\x08\x01onnx", content_type="application/octet-stream"):
        self.status_code = status_code
        self.ok = 200 <= status_code < 400
        self.content = content
        self.headers = CaseInsensitiveDict()
        if content_type is not None:
            self.headers["Content-Type"] = content_type


@pytest.fixture
def fake_http(monkeypatch):
    """Patch requests.get; tests set .response and read .calls."""

    class Http:
        response = FakeResponse()
        calls = []

        def get(self, url, timeout=None):
            self.calls.append((url, timeout))
            return self.response

    http = Http()
    http.calls = []
    monkeypatch.setattr(model_loader.requests, "get", http.get)
    return http


@pytest.fixture
def factory():
    """Session factory that records the bytes it was given."""

    class Factory:
        def __init__(self):
            self.calls = []

        def __call__(self, model_bytes, providers):
            self.calls.append((model_bytes, tuple(providers)))
            return object()

    return Factory()


def test_http_error_is_reported_before_session(fake_http, factory):
    """Test that a 404 raises and no session is created."""
    fake_http.response = FakeResponse(status_code=404)
    registry = SessionRegistry(session_factory=factory)

    with pytest.raises(ModelLoadError, match="Model HTTP 404"):
        registry.get(MODEL_URL)

    assert factory.calls == []
    assert MODEL_URL not in registry


def test_html_content_type_is_rejected(fake_http, factory):
    """Test that an HTML body is refused before any session is built."""
    fake_http.response = FakeResponse(content=b"<html>", content_type="text/html; charset=utf-8")
    registry = SessionRegistry(session_factory=factory)

    with pytest.raises(ModelLoadError, match="Bad content-type"):
        registry.get(MODEL_URL)

    assert factory.calls == []


def test_json_content_type_is_rejected(fake_http):
    """Test that JSON error payloads are treated as textual."""
    fake_http.response = FakeResponse(content=b"{}", content_type="application/json")
    with pytest.raises(ModelLoadError, match="Bad content-type"):
        fetch_model_bytes(MODEL_URL)


def test_empty_body_is_rejected(fake_http):
    """Test that a 200 with no bytes is an error."""
    fake_http.response = FakeResponse(content=b"")
    with pytest.raises(ModelLoadError, match="Empty"):
        fetch_model_bytes(MODEL_URL)


def test_missing_content_type_is_accepted(fake_http):
    """Test that a binary body without a content type loads."""
    fake_http.response = FakeResponse(content=b"abc", content_type=None)
    assert fetch_model_bytes(MODEL_URL, timeout=5.0) == b"abc"
    assert fake_http.calls == [(MODEL_URL, 5.0)]


def test_sessions_are_cached_per_source(fake_http, factory):
    """Test that a second get reuses the session without refetching."""
    registry = SessionRegistry(session_factory=factory, providers=["CPUExecutionProvider"])

    first = registry.get(MODEL_URL)
    second = registry.get(MODEL_URL)

    assert first is second
    assert len(fake_http.calls) == 1
    assert factory.calls == [(b"\x08\x01onnx", ("CPUExecutionProvider",))]
    assert len(registry) == 1


def test_drop_forces_reload(fake_http, factory):
    """Test that dropping a source makes the next get load it again."""
    registry = SessionRegistry(session_factory=factory)
    registry.get(MODEL_URL)

    registry.drop(MODEL_URL)
    assert MODEL_URL not in registry
    registry.get(MODEL_URL)
    assert len(fake_http.calls) == 2

    registry.drop()
    assert len(registry) == 0


def test_local_file(tmp_path, fake_http, factory):
    """Test loading a model from a local path."""
    path = tmp_path / "face.onnx"
    path.write_bytes(b"local-model")
    registry = SessionRegistry(session_factory=factory)

    load_face_model(str(path), registry=registry)

    assert factory.calls[0][0] == b"local-model"
    assert fake_http.calls == []


def test_missing_local_file(tmp_path, factory):
    """Test that a missing model file raises FileNotFoundError."""
    registry = SessionRegistry(session_factory=factory)
    with pytest.raises(FileNotFoundError, match="Model file not found"):
        registry.get(str(tmp_path / "missing.onnx"))
    assert factory.calls == []


def test_empty_registry_is_still_used(fake_http, factory):
    """Test that an empty registry passed explicitly is not replaced."""
    registry = SessionRegistry(session_factory=factory)
    assert len(registry) == 0

    load_face_model(MODEL_URL, registry=registry)

    assert MODEL_URL in registry
