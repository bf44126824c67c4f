import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from library.services.errors import PersistenceError

logger = logging.getLogger(__name__)


class Service:
    """Holds the request-scoped session; reads and commits on behalf of a service."""

    def __init__(self, db: Session):
        self.db = db

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Commit failed during %s: %s", action, exc)
            raise PersistenceError(f"Could not {action}") from exc

    def _read(self, action: str, fetch):
        """Runs a query, reporting storage failures as ``PersistenceError``."""
        try:
            return fetch()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Query failed during %s: %s", action, exc)
            raise PersistenceError(f"Could not {action}") from exc
