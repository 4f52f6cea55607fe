import logging
import sys
from pathlib import Path

_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


class Log:
    """Centralized logging for the anonymizer and its pipeline stage."""

    _logger: logging.Logger = logging.getLogger("ctp_anonymizer")

    @classmethod
    def configure(cls, log_level: str, log_file: Path | None = None) -> None:
        """Set the level and attach a stdout handler, plus a file handler if given."""
        cls._logger.setLevel(log_level.upper())
        if not cls._logger.handlers:
            cls._add_handler(logging.StreamHandler(sys.stdout))
            if log_file is not None:
                cls._add_handler(logging.FileHandler(log_file, encoding="utf-8"))

    @classmethod
    def _add_handler(cls, handler: logging.Handler) -> None:
        handler.setFormatter(logging.Formatter(_FORMAT))
        cls._logger.addHandler(handler)

    @classmethod
    def info(cls, message: str, **kwargs: object) -> None:
        cls._logger.info(message, extra=kwargs)

    @classmethod
    def error(cls, message: str, **kwargs: object) -> None:
        cls._logger.error(message, extra=kwargs)

    @classmethod
    def warning(cls, message: str, **kwargs: object) -> None:
        cls._logger.warning(message, extra=kwargs)

    @classmethod
    def debug(cls, message: str, **kwargs: object) -> None:
        cls._logger.debug(message, extra=kwargs)
