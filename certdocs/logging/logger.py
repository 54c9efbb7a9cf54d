import logging
import sys


class Log:
    """Centralized logging for the certification pipeline."""

    _logger: logging.Logger = logging.getLogger("certdocs")

    @classmethod
    def configure(cls, log_level: str) -> None:
        """Set the level and attach a single stdout handler."""
        cls._logger.setLevel(log_level.upper())
        if not cls._logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(
                logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
            )
            cls._logger.addHandler(handler)

    @classmethod
    def info(cls, message: str, **kwargs: object) -> None:
        cls._logger.info(message, extra=kwargs)

    @classmethod
    def error(cls, message: str, **kwargs: object) -> None:
        cls._logger.error(message, extra=kwargs)

    @classmethod
    def warning(cls, message: str, **kwargs: object) -> None:
        """Log a warning; used for audit-worthy but non-fatal outcomes."""
        cls._logger.warning(message, extra=kwargs)

    @classmethod
    def debug(cls, message: str, **kwargs: object) -> None:
        cls._logger.debug(message, extra=kwargs)

    @classmethod
    def audit(cls, event: str, **fields: object) -> None:
        """Emit an audit record as `AUDIT <event> key=value ...`, sorted by key."""
        details = " ".join(f"{key}={fields[key]}" for key in sorted(fields))
        cls._logger.warning(f"AUDIT {event} {details}".rstrip())
