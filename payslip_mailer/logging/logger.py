import logging
import sys

LOGGER_NAME = "payslip_mailer"
LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(threadName)s] %(message)s"


class Log:
    """Application-wide logging facade.

    Batch dispatch may fan out over worker threads, so every line carries the
    thread name. Messages never include recipient secrets.
    """

    _logger: logging.Logger = logging.getLogger(LOGGER_NAME)

    @classmethod
    def configure(cls, log_level: str) -> None:
        """Set the level and attach a single stdout handler."""
        cls._logger.setLevel(log_level.upper())
        if not cls._logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            cls._logger.addHandler(handler)

    @classmethod
    def info(cls, message: str) -> None:
        cls._logger.info(message)

    @classmethod
    def warning(cls, message: str) -> None:
        cls._logger.warning(message)

    @classmethod
    def error(cls, message: str) -> None:
        cls._logger.error(message)

    @classmethod
    def exception(cls, message: str) -> None:
        """Log an error with the active exception's traceback."""
        cls._logger.exception(message)

    @classmethod
    def debug(cls, message: str) -> None:
        cls._logger.debug(message)
