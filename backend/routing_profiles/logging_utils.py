from __future__ import annotations

import logging
from pathlib import Path
from tempfile import gettempdir
from typing import TYPE_CHECKING, Any

from pythonjsonlogger import jsonlogger

from .settings import settings

if TYPE_CHECKING:
    from .custom_model import CustomModel
    from .model_errors import CustomModelError

LOGGER_NAME = "routing_profiles"
LOG_FILE_NAME = "merge.log.jsonl"


def _log_dir_candidates() -> tuple[Path, ...]:
    return (
        Path(settings.out_dir) / "logs",
        Path.cwd() / "out" / "logs",
        Path(gettempdir()) / "routing-profiles" / "logs",
    )


def _writable_log_dir() -> Path | None:
    for log_dir in _log_dir_candidates():
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            probe = log_dir / ".writetest"
            probe.touch(exist_ok=True)
            probe.unlink(missing_ok=True)
        except OSError:
            continue
        return log_dir
    return None


def _build_handlers() -> list[logging.Handler]:
    formatter = jsonlogger.JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    log_dir = _writable_log_dir()
    if log_dir is not None:
        try:
            handlers.append(logging.FileHandler(log_dir / LOG_FILE_NAME, encoding="utf-8"))
        except OSError:
            pass
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def get_logger() -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    if getattr(logger, "_configured", False):
        return logger

    level = logging.getLevelName(settings.log_level.upper())
    logger.setLevel(level if isinstance(level, int) else logging.INFO)
    logger.propagate = False
    for handler in _build_handlers():
        logger.addHandler(handler)

    logger._configured = True  # type: ignore[attr-defined]
    return logger


def model_fields(model: CustomModel, *, prefix: str = "model") -> dict[str, Any]:
    """Summary of a model small enough to log on every merge."""
    return {
        f"{prefix}_sha256": model.fingerprint_digest(),
        f"{prefix}_distance_influence": model.distance_influence,
        f"{prefix}_max_speed_fallback": model.max_speed_fallback,
        f"{prefix}_clause_counts": {
            "speed_factor": len(model.speed_factor),
            "max_speed": len(model.max_speed),
            "priority": len(model.priority),
        },
        f"{prefix}_areas": sorted(model.areas),
    }


def error_fields(exc: CustomModelError) -> dict[str, Any]:
    # Details are prefixed so keys like "field" or "value" never clash with LogRecord attributes.
    fields: dict[str, Any] = {"reason_code": exc.reason_code, "error": exc.message}
    for key, value in (exc.details or {}).items():
        fields[f"violation_{key}"] = value
    return fields


class ProfileLogger(logging.LoggerAdapter):
    """Adds the profile name and base fingerprint digest to every event."""

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        extra = dict(self.extra or {})
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs


def profile_logger(profile: str, base: CustomModel) -> ProfileLogger:
    return ProfileLogger(get_logger(), {"profile": profile, "base_sha256": base.fingerprint_digest()})


def log_event(
    event: str,
    *,
    level: int = logging.INFO,
    logger: logging.Logger | logging.LoggerAdapter | None = None,
    **fields: Any,
) -> None:
    target = logger if logger is not None else get_logger()
    target.log(level, event, extra={"event": event, **fields})
