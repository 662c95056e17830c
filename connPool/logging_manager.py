import structlog
import logging
import os
from logging.handlers import RotatingFileHandler

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_MAX_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5

def _rotating_handler(path: str, formatter: logging.Formatter, level=logging.NOTSET):
    handler = RotatingFileHandler(path, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler

def setup_logging(log_path: str, log_level: str):
    """
    Send pool events to ``connpool.log`` (everything), ``connpool.err``
    (ERROR and above) and the console.

    Pool modules log through structlog; their events are rendered as JSON
    and handed to the standard library handlers configured here, together
    with any correlation data bound via ``structlog.contextvars``.
    """
    os.makedirs(log_path, exist_ok=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(default=repr),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.setLevel(log_level)
    formatter = logging.Formatter(LOG_FORMAT)

    root.addHandler(_rotating_handler(os.path.join(log_path, "connpool.log"), formatter))
    root.addHandler(_rotating_handler(os.path.join(log_path, "connpool.err"), formatter, logging.ERROR))

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)
