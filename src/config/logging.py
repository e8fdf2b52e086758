import logging
import sys
from dataclasses import dataclass
from typing import Any

from src.config.settings import Settings, settings
from src.data import Config, Market, Order, Session

STORE_LOGGER_NAME = "cryptopump.store"


def setup_logging(app_settings: Settings | None = None) -> logging.Logger:
    """Configure application logging."""
    app_settings = app_settings or settings

    # Create logs directory if it doesn't exist
    app_settings.log_file.parent.mkdir(parents=True, exist_ok=True)

    # Configure root logger
    logging.basicConfig(
        level=getattr(logging, app_settings.log_level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(app_settings.log_file),
            logging.StreamHandler(sys.stdout)
        ]
    )

    # Set specific logger levels
    logging.getLogger('sqlalchemy').setLevel(logging.WARNING)
    logging.getLogger('pymysql').setLevel(logging.WARNING)

    return logging.getLogger(__name__)


def _as_dict(record) -> dict[str, Any] | None:
    return record.to_dict() if record is not None else None


@dataclass
class LogEntry:
    """
    One structured log entry for a persistence failure.

    Carries whichever of Config, Market, Session and Order was in scope when
    the failure happened (the rest stay None). The bundle is attached to the
    emitted record as ``record.log_entry``.
    """

    message: str
    config: Config | None = None
    market: Market | None = None
    session: Session | None = None
    order: Order | None = None
    level: int = logging.ERROR

    def context(self) -> dict[str, Any]:
        return {
            "config": _as_dict(self.config),
            "market": _as_dict(self.market),
            "session": _as_dict(self.session),
            "order": _as_dict(self.order),
        }

    def do(self) -> None:
        context = self.context()
        thread_id = context["session"]["thread_id"] if context["session"] else ""
        logging.getLogger(STORE_LOGGER_NAME).log(
            self.level,
            f"[{thread_id}] {self.message}" if thread_id else self.message,
            extra={"log_entry": context},
        )
