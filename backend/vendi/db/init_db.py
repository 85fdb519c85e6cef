"""Create all tables. Run on app startup."""
import logging

from vendi.db.base import Base
from vendi.db.session import engine
from vendi.models import conversation_state, action_history, product, message  # noqa: F401 - register models

logger = logging.getLogger(__name__)


def init_db(bind=None):
    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    logger.info(f"Database tables ensured on {bind.url.render_as_string(hide_password=True)}")
