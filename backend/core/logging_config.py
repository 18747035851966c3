"""
Process-wide logging setup for the offers engine.

Module loggers (services.*, jobs.*) inherit the root level; the structured
JSON logger in core.utils.logging writes through the same handler.
"""
import logging
import sys
from typing import Optional

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Libraries that log every statement or request at INFO
QUIET_LOGGERS = ('aiosqlite', 'sqlalchemy.engine', 'sqlalchemy.pool', 'uvicorn.access')


def setup_logging(
    level: str = "INFO",
    log_format: Optional[str] = None,
    job_level: Optional[str] = None
) -> None:
    """
    Configure the root logger once per process.

    Args:
        level: Root level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Format string, defaults to DEFAULT_FORMAT
        job_level: Separate level for the tier batch job, which logs per customer
    """
    root_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=root_level,
        format=log_format or DEFAULT_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(root_level, logging.WARNING))

    # The structured logger installs a fallback handler when imported before this runs
    structured = logging.getLogger('offers')
    structured.handlers.clear()
    structured.setLevel(logging.NOTSET)

    if job_level:
        logging.getLogger('jobs').setLevel(getattr(logging, job_level.upper(), root_level))
