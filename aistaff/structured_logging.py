"""
Structured Logging - JSON or plain-text output with request correlation.

Every module logs through ``logging.getLogger(__name__)``; this module only
decides how records under the ``aistaff`` logger are rendered and carries
the per-request context (request id, user id, agent id) into each record.
"""

import json
import logging
import sys
import uuid
from contextvars import ContextVar

# Context variables for request correlation
request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str] = ContextVar("user_id", default="")
agent_id_var: ContextVar[str] = ContextVar("agent_id", default="")

ROOT_LOGGER = "aistaff"
PLAIN_FORMAT = "%(asctime)s %(levelname)-7s %(name)s [%(request_id)s] %(message)s"


class RequestContextFilter(logging.Filter):
    """Copies the current context variables onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("") or "-"
        record.user_id = user_id_var.get("")
        record.agent_id = agent_id_var.get("")
        return True


class StructuredFormatter(logging.Formatter):
    """JSON structured log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        req_id = getattr(record, "request_id", "")
        if req_id and req_id != "-":
            log_entry["request_id"] = req_id
        usr_id = getattr(record, "user_id", "")
        if usr_id:
            log_entry["user_id"] = usr_id
        agt_id = getattr(record, "agent_id", "")
        if agt_id:
            log_entry["agent_id"] = agt_id

        if record.exc_info and record.exc_info[0]:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
            }

        return json.dumps(log_entry)


_configured = False


def setup_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Install a single stdout handler on the ``aistaff`` logger."""
    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestContextFilter())
    if json_output:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))

    root = logging.getLogger(ROOT_LOGGER)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.propagate = False
    _configured = True


def set_request_context(request_id: str = "", user_id: str = "", agent_id: str = ""):
    """Set context variables for the current request."""
    if request_id:
        request_id_var.set(request_id)
    if user_id:
        user_id_var.set(user_id)
    if agent_id:
        agent_id_var.set(agent_id)


def generate_request_id() -> str:
    """Generate a unique request ID."""
    return str(uuid.uuid4())[:12]
