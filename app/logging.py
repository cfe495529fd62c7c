import logging
import sys

from app.config import settings

# module loggers (logging.getLogger(__name__)) under app.* propagate here
logger = logging.getLogger("app")

formatter = logging.Formatter(
    fmt="%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
)

handlers = [logging.StreamHandler(sys.stdout)]
if settings.LOG_FILE:
    handlers.append(logging.FileHandler(settings.LOG_FILE))

for handler in handlers:
    handler.setFormatter(formatter)

logger.handlers = handlers
logger.setLevel(settings.LOG_LEVEL.upper())
