# logging_config.py
import logging
import sys

from config import LOG_LEVEL


class ColoredFormatter(logging.Formatter):
     """Console formatter that colors the level name."""

     COLORS = {
          'DEBUG': '\033[36m',
          'INFO': '\033[32m',
          'WARNING': '\033[33m',
          'ERROR': '\033[31m',
          'CRITICAL': '\033[35m',
     }
     RESET = '\033[0m'

     def format(self, record):
          record = logging.makeLogRecord(record.__dict__)
          color = self.COLORS.get(record.levelname, '')
          record.levelname = f"{color}{record.levelname}{self.RESET}"
          return super().format(record)


def setup_logging(level: str = LOG_LEVEL) -> logging.Logger:
     """Configure the root logger once for the API process and scripts."""
     root_logger = logging.getLogger()
     root_logger.setLevel(level)
     root_logger.handlers.clear()

     console_handler = logging.StreamHandler(sys.stdout)
     console_handler.setLevel(level)
     console_handler.setFormatter(ColoredFormatter(
          '%(asctime)s | %(levelname)s | %(name)s | %(message)s',
          datefmt='%Y-%m-%d %H:%M:%S'
     ))
     root_logger.addHandler(console_handler)

     # Suppress verbose third-party logs
     logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
     logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
     logging.getLogger("urllib3").setLevel(logging.WARNING)

     return root_logger
