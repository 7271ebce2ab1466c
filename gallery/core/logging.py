from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator

import structlog

SERVICE_NAME = "gallery"


def _add_service(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def level_from_name(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def configure_logging(level: int | str = logging.INFO, *, json_output: bool = True) -> None:
    """JSON lines for the API; the CLI passes ``json_output=False`` for a readable console."""
    if isinstance(level, str):
        level = level_from_name(level)
    logging.basicConfig(format="%(message)s", level=level)

    renderer: Any = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _add_service,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        # Through stdlib logging (stderr), so CLI JSON on stdout stays parseable.
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )


def get_logger(**initial_values: Any) -> structlog.BoundLogger:
    return structlog.get_logger().bind(**initial_values)


@contextmanager
def upload_context(**values: Any) -> Iterator[None]:
    """Attach upload identifiers (model, set, source file) to every event logged inside."""
    with structlog.contextvars.bound_contextvars(**{key: value for key, value in values.items() if value is not None}):
        yield


__all__ = ["SERVICE_NAME", "configure_logging", "get_logger", "level_from_name", "upload_context"]
