"""Logging setup: level and text/logfmt/json output formats"""

import logging

import structlog

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"
FIELD_ORDER = ["time", "level", "logger", "msg"]

LEVELS = {
    "critical": logging.CRITICAL,
    "fatal": logging.CRITICAL,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def structured_formatter(renderer) -> structlog.stdlib.ProcessorFormatter:
    """Render stdlib records as ``time``, ``level``, ``logger`` and ``msg`` fields"""
    pre_chain = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", key="time"),
        structlog.processors.format_exc_info,
    ]
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.EventRenamer("msg"),
            renderer,
        ],
        foreign_pre_chain=pre_chain,
    )


def build_formatter(fmt: str) -> logging.Formatter:
    """Formatter for an output format name; unknown names raise ValueError"""
    if fmt == "json":
        return structured_formatter(structlog.processors.JSONRenderer())
    if fmt == "logfmt":
        return structured_formatter(structlog.processors.LogfmtRenderer(key_order=FIELD_ORDER))
    if fmt == "text":
        return logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT)
    raise ValueError(f"Unknown log format '{fmt}'")


def configure_logging(level: str = "info", fmt: str = "text") -> None:
    """Configure the root logger

    Unknown levels fall back to info and unknown formats to text, each with a
    warning once logging is set up.

    Args:
        level: Level name (critical, fatal, error, warn, warning, info, debug)
        fmt: Output format (text, logfmt, json)
    """
    warnings = []

    level_value = LEVELS.get((level or "").lower())
    if level_value is None:
        warnings.append(f"Unknown log level '{level}', defaulting to info")
        level_value = logging.INFO

    fmt_name = (fmt or "").lower()
    try:
        formatter = build_formatter(fmt_name)
    except ValueError:
        warnings.append(f"Unknown log format '{fmt}', defaulting to text")
        fmt_name = "text"
        formatter = build_formatter(fmt_name)

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    logging.basicConfig(level=level_value, handlers=[handler], force=True)

    # paramiko logs every transport event at INFO
    if level_value > logging.DEBUG:
        logging.getLogger("paramiko").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    for message in warnings:
        logger.warning(message)
    logger.debug(f"Log level set to {logging.getLevelName(level_value)}, format set to {fmt_name}")
