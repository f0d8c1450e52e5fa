"""Opik spans for routes, services and voice captures."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Dict, Iterator, Optional

from mentorme.core.context import get_request_id, get_user_id
from mentorme.observability.client import get_opik_client

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from opik.api_objects.trace.trace_client import Trace
else:  # pragma: no cover - typing helper
    Trace = object  # type: ignore[assignment]

logger = logging.getLogger(__name__)


def _span_metadata(
    metadata: Optional[Dict[str, Any]],
    user_id: Optional[str],
    request_id: Optional[str],
) -> Dict[str, Any]:
    merged = {key: value for key, value in (metadata or {}).items() if value is not None}
    # background voice tasks inherit the ids bound by the request that started them
    user_id = user_id or get_user_id()
    request_id = request_id or get_request_id()
    if user_id:
        merged.setdefault("user_id", str(user_id))
    if request_id:
        merged.setdefault("request_id", request_id)
    return merged


@contextmanager
def trace(
    name: str,
    metadata: Optional[Dict[str, Any]] = None,
    user_id: Optional[str] = None,
    request_id: Optional[str] = None,
) -> Iterator[Optional["Trace"]]:
    """Open an Opik trace around a block; yields None when Opik is off.

    Exceptions raised in the block are attached to the trace as error info
    and re-raised unchanged.
    """
    client = get_opik_client()
    span: Optional["Trace"] = None
    if client:
        try:
            span = client.trace(name=name, metadata=_span_metadata(metadata, user_id, request_id) or None)
        except Exception as exc:  # pragma: no cover - network
            logger.debug("Unable to start Opik trace %s: %s", name, exc)

    try:
        yield span
    except Exception as exc:
        if span:
            try:
                span.update(error_info={"exception_type": type(exc).__name__, "message": str(exc)})
            except Exception:  # pragma: no cover
                logger.debug("Failed to attach error info to Opik trace %s", name, exc_info=True)
        raise
    finally:
        if span:
            try:
                span.end()
            except Exception:  # pragma: no cover
                logger.debug("Failed to close Opik trace %s cleanly", name, exc_info=True)


def annotate(span: Optional["Trace"], **metadata: Any) -> None:
    """Merge metadata into an open trace; skipped when tracing is off."""
    if not span:
        return
    try:
        span.update(metadata=metadata)
    except Exception:  # pragma: no cover - network
        logger.debug("Unable to annotate trace", exc_info=True)
