"""Logging setup shared by every module"""
import logging
import os
from typing import Optional
from colorama import Fore, Style, init as colorama_init

colorama_init(autoreset=True)

LEVEL_COLORS = {
    'DEBUG': Fore.CYAN,
    'INFO': Fore.GREEN,
    'WARNING': Fore.YELLOW,
    'ERROR': Fore.RED,
    'CRITICAL': Fore.MAGENTA + Style.BRIGHT,
}

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

_file_handler: Optional[logging.Handler] = None


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name for console output"""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = LEVEL_COLORS.get(record.levelname)
        if color:
            message = message.replace(record.levelname, f"{color}{record.levelname}{Style.RESET_ALL}", 1)
        return message


def setup_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """Get a logger with a colored console handler attached once"""
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(ColoredFormatter(LOG_FORMAT))
        logger.addHandler(handler)
        if _file_handler:
            logger.addHandler(_file_handler)
        logger.propagate = False

    level_name = level or os.environ.get('GHERKINRUNNER_LOG_LEVEL', 'INFO')
    logger.setLevel(getattr(logging, level_name.upper(), logging.INFO))
    return logger


def configure_logging(level: Optional[str] = None, log_file: Optional[str] = None):
    """Apply level and optional log file to all project loggers"""
    global _file_handler

    if log_file:
        os.makedirs(os.path.dirname(log_file) or '.', exist_ok=True)
        _file_handler = logging.FileHandler(log_file, encoding='utf-8')
        _file_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    for logger_name in list(logging.root.manager.loggerDict):
        if not (logger_name.startswith('gherkinrunner') or logger_name in ('run', '__main__')):
            continue
        logger = logging.getLogger(logger_name)
        if level:
            logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        if _file_handler and _file_handler not in logger.handlers:
            logger.addHandler(_file_handler)
