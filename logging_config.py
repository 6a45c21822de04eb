import sys
from loguru import logger
from config import get_log_level, get_log_file

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{function} | {message}"

def setup_logging() -> None:
    logger.remove()

    level = get_log_level()
    logger.add(sys.stdout, level=level, format=LOG_FORMAT)

    log_file = get_log_file()
    if log_file:
        logger.add(
            log_file,
            rotation="10 MB",
            retention="14 days",
            level=level,
            format=LOG_FORMAT
        )

    logger.info("Logging initialized")
