from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class _BelowErrorFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < logging.ERROR


def init_loggers(run_env: str, *, stream_out=None, stream_err=None) -> logging.Logger:
    """
    Configure root logging for the process.

    Informational records go to stdout and errors to stderr, so the two can
    be collected separately by the container runtime. Development runs log
    at DEBUG, everything else at INFO.
    """
    env = (run_env or "").strip().lower()
    level = logging.DEBUG if env in ("", "dev", "development", "local") else logging.INFO
    formatter = logging.Formatter(LOG_FORMAT)

    info_handler = logging.StreamHandler(stream_out or sys.stdout)
    info_handler.setLevel(logging.DEBUG)
    info_handler.addFilter(_BelowErrorFilter())
    info_handler.setFormatter(formatter)

    error_handler = logging.StreamHandler(stream_err or sys.stderr)
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(formatter)

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(info_handler)
    root.addHandler(error_handler)
    root.setLevel(level)

    # werkzeug's per-request access lines are noisy outside development
    logging.getLogger("werkzeug").setLevel(level if level == logging.DEBUG else logging.WARNING)

    logger = logging.getLogger("app.peerreview")
    logger.debug("Logging initialised (env=%s level=%s)", env or "development", logging.getLevelName(level))
    return logger
