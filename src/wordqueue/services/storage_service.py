"""Service for saving and loading learning state snapshots."""
import json
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wordqueue.config import STATE_SCHEMA_VERSION, settings
from wordqueue.models.models import StateSnapshot
from wordqueue.models.queue_models import LearningState
from wordqueue.monitoring import error_count, snapshot_operations
from wordqueue.services.state_codec import state_from_dict

logger = logging.getLogger(__name__)


class StorageService:
    """Persist one learning state per key in the database."""

    def __init__(self, db: Session, key: Optional[str] = None):
        """Initialize the service with a database session."""
        self.db = db
        self.key = key or settings.database.state_key

    def save(self, state: LearningState) -> bool:
        """Save ``state``. Returns False if the database write failed."""
        payload = json.dumps({"schema_version": STATE_SCHEMA_VERSION, "state": state.to_dict()})
        try:
            snapshot = (
                self.db.query(StateSnapshot)
                .filter(StateSnapshot.key == self.key)
                .first()
            )
            if snapshot is None:
                snapshot = StateSnapshot(key=self.key, payload=payload)
                self.db.add(snapshot)
            else:
                snapshot.payload = payload
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to save learning state %s: %s", self.key, str(e))
            error_count.labels(error_type="save").inc()
            return False

        snapshot_operations.labels(operation_type="save").inc()
        return True

    def load(self) -> Optional[LearningState]:
        """Load the saved state, or None when there is nothing usable."""
        try:
            snapshot = (
                self.db.query(StateSnapshot)
                .filter(StateSnapshot.key == self.key)
                .first()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to load learning state %s: %s", self.key, str(e))
            error_count.labels(error_type="load").inc()
            return None

        if snapshot is None:
            return None

        try:
            document = json.loads(snapshot.payload)
        except ValueError as e:
            logger.warning("Saved learning state %s is not valid JSON: %s", self.key, str(e))
            error_count.labels(error_type="corrupt_snapshot").inc()
            return None

        if not isinstance(document, dict) or document.get("schema_version") != STATE_SCHEMA_VERSION:
            logger.warning(
                "Ignoring learning state %s with unsupported schema version", self.key
            )
            return None

        snapshot_operations.labels(operation_type="load").inc()
        return state_from_dict(document.get("state"))

    def delete(self) -> bool:
        """Delete the saved state."""
        try:
            self.db.query(StateSnapshot).filter(StateSnapshot.key == self.key).delete()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to delete learning state %s: %s", self.key, str(e))
            error_count.labels(error_type="delete").inc()
            return False
        return True
