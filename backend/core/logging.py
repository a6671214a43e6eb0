"""Configuration de logging basée sur structlog.

Objectif du module
------------------
- Fournir des logs structurés lisibles en développement, avec le `request_id` lié par le
  middleware dans chaque événement.
- Aligner le niveau des loggers standard (httpx, SQLAlchemy, uvicorn) sur celui de structlog.
"""

import logging
import sys

import structlog


def _resolve_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(level: str | int = "DEBUG") -> None:
    """Configure structlog et le logging standard au niveau demandé (nom ou entier)."""
    numeric = _resolve_level(level)
    logging.basicConfig(level=numeric, stream=sys.stdout, format="%(message)s")
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )
