"""Root logger setup shared by the sync and key audit commands."""
import logging
import os
import sys
from logging import Handler
from typing import Optional

from tqdm import tqdm

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


class TqdmLoggingHandler(Handler):
    """
    Logging handler that writes through tqdm.write so log lines do not
    tear the per-locale progress bar.
    """
    def emit(self, record):
        try:
            msg = self.format(record)
            tqdm.write(msg, file=sys.stderr)
            self.flush()
        except (KeyboardInterrupt, SystemExit):
            raise
        except Exception:
            self.handleError(record)


def setup_logger(log_level_str: str, log_file_path: Optional[str], log_to_console: bool) -> logging.Logger:
    """
    Set up the root logger for the pre-translation tools.

    Every module logs through the ``logging`` module functions, so the handlers
    are installed on the root logger. The HTTP client's per-request INFO lines
    are lowered to WARNING.

    Args:
        log_level_str: The logging level as a string (e.g., 'INFO', 'DEBUG').
        log_file_path: The path to the log file, or None to skip file logging.
        log_to_console: Whether to log to stderr.

    Returns:
        The configured logger instance.
    """
    logger = logging.getLogger()

    log_level = getattr(logging, log_level_str.upper(), logging.INFO)
    logger.setLevel(log_level)

    # Reconfiguring replaces the handlers of a previous call.
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT)

    if log_file_path:
        log_dir = os.path.dirname(log_file_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file_path, encoding='utf-8')
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if log_to_console:
        tqdm_handler = TqdmLoggingHandler()
        tqdm_handler.setFormatter(formatter)
        logger.addHandler(tqdm_handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return logger
