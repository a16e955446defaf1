"""
Model loading for the face redaction system.

Responsibility:
    Fetch the ONNX face model (HTTP(S) URL or local file), validate what
    came back, and build a ready-to-run onnxruntime.InferenceSession.
    Sessions are cached per source in an explicit SessionRegistry.

Non-goals:
    - No preprocessing, inference, or frame-level logic.
    - No retry policy; transport errors propagate to the caller.
    - No fallback to alternative models.

Failure behavior:
    - Non-2xx HTTP responses raise ModelLoadError ("Model HTTP <status>").
    - Textual content types (HTML error pages, JSON, ...) raise
      ModelLoadError ("Bad content-type").
    - Missing local files raise FileNotFoundError with the resolved path.
    - All checks run before a session is constructed.
"""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Sequence

import requests

from facescrub.config import get_project_root

logger = logging.getLogger(__name__)

SessionFactory = Callable[[bytes, Sequence[str]], Any]

_TEXTUAL_MARKERS = ("html", "json", "xml")


class ModelLoadError(RuntimeError):
    """Raised when model bytes cannot be fetched or look wrong."""


def _is_url(source: str) -> bool:
    return source.lower().startswith(("http://", "https://"))


def _is_textual(content_type: str) -> bool:
    ctype = content_type.split(";", 1)[0].strip().lower()
    return ctype.startswith("text/") or any(m in ctype for m in _TEXTUAL_MARKERS)


def fetch_model_bytes(source: str, timeout: float = 30.0) -> bytes:
    """Read model bytes from a URL or a local file.

    Args:
        source: http(s) URL, or a file path (relative paths resolve
                against the project root).
        timeout: HTTP timeout in seconds.

    Returns:
        The raw model bytes.

    Raises:
        ModelLoadError: On a non-2xx status, a textual content type, or an
                        empty body.
        FileNotFoundError: If a local model file does not exist.
    """
    if not _is_url(source):
        path = Path(source)
        if not path.is_absolute():
            path = get_project_root() / path
        if not path.is_file():
            raise FileNotFoundError(
                f"Model file not found.\n"
                f"  Expected: {path}\n"
                f"  Download the model and place it at the path above,\n"
                f"  or update 'model.source' in your config."
            )
        logger.info("Reading model from %s", path)
        return path.read_bytes()

    logger.info("Fetching model from %s", source)
    response = requests.get(source, timeout=timeout)

    if not response.ok:
        raise ModelLoadError(f"Model HTTP {response.status_code} @ {source}")

    content_type = response.headers.get("content-type") or ""
    if _is_textual(content_type):
        raise ModelLoadError(
            f"Bad content-type '{content_type}' @ {source}: expected binary "
            f"model data (is the URL pointing at an HTML page?)"
        )

    data = response.content
    if not data:
        raise ModelLoadError(f"Empty model body @ {source}")

    logger.info("Fetched %d bytes (%s)", len(data), content_type or "no content-type")
    return data


def create_ort_session(model_bytes: bytes, providers: Sequence[str]):
    """Build an ONNX Runtime session from in-memory model bytes."""
    try:
        import onnxruntime as ort
    except ImportError as e:  # pragma: no cover
        raise ImportError(
            "onnxruntime is required to run the face model. Install it with "
            "`pip install onnxruntime` (or `onnxruntime-gpu`)."
        ) from e

    sess_opts = ort.SessionOptions()
    sess_opts.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL
    session = ort.InferenceSession(
        model_bytes, sess_options=sess_opts, providers=list(providers)
    )
    logger.info("ONNX Runtime session ready (providers=%s)", session.get_providers())
    return session


class SessionRegistry:
    """Keyed cache of inference sessions, one per model source.

    Usage:
        registry = SessionRegistry()
        session = registry.get("https://example.com/face.onnx")
        again = registry.get("https://example.com/face.onnx")  # cached
        registry.drop()                                          # clear all
    """

    def __init__(
        self,
        session_factory: Optional[SessionFactory] = None,
        providers: Sequence[str] = ("CPUExecutionProvider",),
        timeout: float = 30.0,
    ) -> None:
        self._factory = session_factory or create_ort_session
        self._providers = tuple(providers)
        self._timeout = timeout
        self._sessions: Dict[str, Any] = {}

    def get(self, source: str):
        """Return the session for source, loading it on first use."""
        session = self._sessions.get(source)
        if session is not None:
            logger.debug("Session cache hit: %s", source)
            return session

        model_bytes = fetch_model_bytes(source, timeout=self._timeout)
        session = self._factory(model_bytes, self._providers)
        self._sessions[source] = session
        return session

    def drop(self, source: Optional[str] = None) -> None:
        """Forget one cached session, or all of them."""
        if source is None:
            self._sessions.clear()
        else:
            self._sessions.pop(source, None)

    def __contains__(self, source: str) -> bool:
        return source in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)


_default_registry = SessionRegistry()


def load_face_model(source: str, registry: Optional[SessionRegistry] = None):
    """Load (or reuse) the inference session for a model source.

    Args:
        source: Model URL or file path.
        registry: Cache to use. Defaults to the module-wide registry.

    Returns:
        An inference session exposing get_inputs/get_outputs/run.
    """
    if registry is None:
        registry = _default_registry
    return registry.get(source)
