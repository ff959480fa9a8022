"""
Logging for the hotpath agent, built on loguru.

Every module logs through logging.getLogger(__name__); configure_logging()
routes those records into a single loguru sink that writes one JSON object
per line to stderr.

Two pieces of context ride along in contextvars and are stamped onto each
record by the sink filter:

- request_id: the id of the HTTP request being served (see RequestIDMiddleware)
- sample context: project and environment of the batch being ingested, so the
  flush and token renewal logs written while handling that batch carry them
"""

import json
import logging
import sys
import traceback
from contextlib import contextmanager
from contextvars import ContextVar
from types import FrameType
from typing import Any, Dict, Iterator, Optional

from loguru import logger

from hotpath_agent.core.config import settings

UNSET = "-"

request_id_var: ContextVar[str] = ContextVar("request_id", default=UNSET)
project_var: ContextVar[str] = ContextVar("project", default=UNSET)
environment_var: ContextVar[str] = ContextVar("environment", default=UNSET)

# Loggers that would otherwise write a line per outbound or inbound request
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


class InterceptHandler(logging.Handler):
    """Forward stdlib logging records to loguru, keeping the caller's location."""

    def emit(self, record: logging.LogRecord):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame: Optional[FrameType] = sys._getframe(settings.LOGGING_FRAME_DEPTH)
        depth: int = settings.LOGGING_FRAME_DEPTH
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def context_filter(record) -> bool:
    """Copy whichever context values are set into record["extra"]."""
    for key, var in (
        ("request_id", request_id_var),
        ("project", project_var),
        ("environment", environment_var),
    ):
        value = var.get()
        if value and value != UNSET:
            record["extra"][key] = value
    return True


def _exception_fields(exception) -> Optional[Dict[str, Any]]:
    if not exception:
        return None

    exc_type, exc_value, exc_tb = exception.type, exception.value, exception.traceback
    formatted = None
    if exc_tb:
        formatted = "".join(
            traceback.format_exception(exc_type, exc_value, exc_tb)
        ).strip()

    return {
        "type": exc_type.__name__ if exc_type else None,
        "value": str(exc_value) if exc_value else None,
        "traceback": formatted,
    }


def build_json_record(record) -> Dict[str, Any]:
    """
    Flatten a loguru record into the dict written by the JSON sink.

    Context fields (request_id, project, environment) only appear when set.
    """
    log_record: Dict[str, Any] = {
        "timestamp": record["time"].strftime("%Y-%m-%d %H:%M:%S"),
        "level": record["level"].name,
        "logger": record["name"],
        "message": record["message"],
    }

    extra = record["extra"]
    for key in ("request_id", "project", "environment"):
        if key in extra:
            log_record[key] = extra[key]

    log_record["exception"] = _exception_fields(record["exception"])
    log_record["process"] = {"id": record["process"].id, "name": record["process"].name}
    log_record["thread"] = {"id": record["thread"].id, "name": record["thread"].name}
    return log_record


def json_sink(message):
    sys.stderr.write(json.dumps(build_json_record(message.record), default=str) + "\n")


def configure_logging(log_level: Optional[str] = None):
    """
    Install the JSON sink and route stdlib logging into it.

    Args:
        log_level: Level name to log at; defaults to settings.LOG_LEVEL
    """
    log_level = (log_level or settings.LOG_LEVEL).upper()

    logger.remove()
    logger.add(
        json_sink,
        level=log_level,
        backtrace=True,
        diagnose=False,
        filter=context_filter,
    )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.info(f"Logging configured at level {log_level}")


def set_request_id(request_id: str):
    """Set the request_id for the current context (called by the middleware)."""
    request_id_var.set(request_id)


def clear_request_id():
    request_id_var.set(UNSET)


def get_request_id() -> str:
    return request_id_var.get()


@contextmanager
def sample_context(project: Optional[str], environment: Optional[str] = None) -> Iterator[None]:
    """
    Tag every log record written inside the block with project/environment.

    Missing values are left unset rather than logged as empty strings.
    """
    project_token = project_var.set(project or UNSET)
    environment_token = environment_var.set(environment or UNSET)
    try:
        yield
    finally:
        environment_var.reset(environment_token)
        project_var.reset(project_token)


def get_sample_context() -> Dict[str, str]:
    """Currently bound project/environment, omitting unset values."""
    context = {"project": project_var.get(), "environment": environment_var.get()}
    return {key: value for key, value in context.items() if value != UNSET}
