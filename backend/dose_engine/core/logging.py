import logging
from logging.config import dictConfig
from typing import Any, Optional

from dose_engine.core.settings import EngineSettings, get_settings

PACKAGE_LOGGER = "dose_engine"
# One INFO record per finished calculation, independent of the package level
AUDIT_LOGGER = "dose_engine.audit"

logger = logging.getLogger(__name__)

_active_level: Optional[str] = None


def build_logging_config(level: str) -> dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "engine": {
                "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S%z",
            },
            "audit": {
                "format": "%(asctime)s AUDIT %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S%z",
            },
        },
        "handlers": {
            "engine": {"class": "logging.StreamHandler", "formatter": "engine"},
            "audit": {"class": "logging.StreamHandler", "formatter": "audit"},
        },
        "loggers": {
            PACKAGE_LOGGER: {"handlers": ["engine"], "level": level, "propagate": False},
            AUDIT_LOGGER: {"handlers": ["audit"], "level": "INFO", "propagate": False},
        },
    }


def configure_logging(settings: Optional[EngineSettings] = None, *, force: bool = False) -> str:
    """
    Apply the configured log level to the engine's loggers.

    Standalone, the engine installs its own console handlers. When the host
    application already has handlers on the root logger those are left alone
    and only the levels are set. Repeated calls with an unchanged level are
    no-ops unless `force` is given.
    """
    global _active_level

    level = (settings or get_settings()).logging.level
    if level == _active_level and not force:
        return level

    if logging.getLogger().handlers:
        for name, name_level in ((PACKAGE_LOGGER, level), (AUDIT_LOGGER, "INFO")):
            engine_logger = logging.getLogger(name)
            engine_logger.setLevel(name_level)
            engine_logger.propagate = True
    else:
        dictConfig(build_logging_config(level))

    _active_level = level
    logger.debug("Engine logging set to %s", level)
    return level


__all__ = ["AUDIT_LOGGER", "PACKAGE_LOGGER", "build_logging_config", "configure_logging"]
