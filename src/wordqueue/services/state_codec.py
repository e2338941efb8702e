"""Conversion between learning state objects and loosely shaped JSON data."""
import logging
from datetime import UTC, datetime
from typing import Any, List, Optional

from wordqueue.config import LEVEL_STARTING_INDEX
from wordqueue.models.queue_models import (
    DailyStats,
    LearningMode,
    LearningState,
    LevelTestResult,
    WordLearningItem,
)
from wordqueue.monitoring import error_count
from wordqueue.services.queue_manager import item_from_dict, validate_item
from wordqueue.services.scheduler import current_time_ms

logger = logging.getLogger(__name__)


def date_for(timestamp: int) -> str:
    """ISO calendar date (UTC) of a millisecond timestamp."""
    return datetime.fromtimestamp(timestamp / 1000, UTC).date().isoformat()


def create_default_state(now: int) -> LearningState:
    """Fresh state with an empty queue and zeroed counters."""
    return LearningState(
        detected_level="A1",
        level_test_results=[],
        progress=0,
        words_learned=0,
        words_reviewed=0,
        learning_queue=[],
        learned_words=[],
        current_mode=LearningMode.LEARNING,
        last_activity=now,
        session_start_time=now,
        today_stats=DailyStats(date=date_for(now)),
    )


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _count(value: Any, default: int) -> int:
    return value if _is_int(value) and value >= 0 else default


def _number(value: Any, default: float) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value >= 0:
        return value
    return default


def _learned_words(value: Any) -> List[int]:
    if not isinstance(value, list):
        return []
    learned: List[int] = []
    seen = set()
    for word_id in value:
        if _is_int(word_id) and word_id >= 0 and word_id not in seen:
            seen.add(word_id)
            learned.append(word_id)
    return learned


def _level_test_results(value: Any) -> List[LevelTestResult]:
    if not isinstance(value, list):
        return []
    return [
        LevelTestResult(word_id=entry["word_id"], known=entry["known"])
        for entry in value
        if isinstance(entry, dict)
        and _is_int(entry.get("word_id"))
        and isinstance(entry.get("known"), bool)
    ]


def _learning_queue(value: Any, learned: List[int], now: int) -> List[WordLearningItem]:
    if not isinstance(value, list):
        return []

    learned_ids = set(learned)
    queue: List[WordLearningItem] = []
    seen = set()
    for raw in value:
        item = item_from_dict(raw)
        if item is None:
            logger.warning("Dropping malformed queue item: %r", raw)
            error_count.labels(error_type="invalid_item").inc()
            continue

        validation = validate_item(item, now)
        if not validation.is_valid:
            logger.warning(
                "Dropping invalid queue item for word %d: %s",
                item.word_id,
                ", ".join(validation.errors),
            )
            error_count.labels(error_type="invalid_item").inc()
            continue

        if item.word_id in seen or item.word_id in learned_ids:
            logger.warning("Dropping duplicate queue item for word %d", item.word_id)
            continue

        seen.add(item.word_id)
        queue.append(item)
    return queue


def _daily_stats(value: Any, default: DailyStats) -> DailyStats:
    if not isinstance(value, dict):
        return default
    date = value.get("date")
    return DailyStats(
        date=date if isinstance(date, str) else default.date,
        new_words=_count(value.get("new_words"), default.new_words),
        review_words=_count(value.get("review_words"), default.review_words),
        time_spent=_number(value.get("time_spent"), default.time_spent),
        streak_days=_count(value.get("streak_days"), default.streak_days),
    )


def state_from_dict(data: Any, now: Optional[int] = None) -> LearningState:
    """Build a state from imported or persisted data.

    Every field is coerced on its own: a missing or mistyped field takes its
    default value and queue items that fail validation are dropped. Nothing in
    here raises on badly shaped input.
    """
    if now is None:
        now = current_time_ms()

    default = create_default_state(now)
    if not isinstance(data, dict):
        logger.warning("Learning state is not an object, using defaults")
        return default

    level = data.get("detected_level")
    if not isinstance(level, str) or level not in LEVEL_STARTING_INDEX:
        level = default.detected_level
    try:
        mode = LearningMode(data.get("current_mode"))
    except (TypeError, ValueError):
        mode = default.current_mode

    learned = _learned_words(data.get("learned_words"))

    return LearningState(
        detected_level=level,
        level_test_results=_level_test_results(data.get("level_test_results")),
        progress=_count(data.get("progress"), default.progress),
        words_learned=_count(data.get("words_learned"), default.words_learned),
        words_reviewed=_count(data.get("words_reviewed"), default.words_reviewed),
        learning_queue=_learning_queue(data.get("learning_queue"), learned, now),
        learned_words=learned,
        current_mode=mode,
        last_activity=_count(data.get("last_activity"), default.last_activity),
        session_start_time=_count(data.get("session_start_time"), default.session_start_time),
        today_stats=_daily_stats(data.get("today_stats"), default.today_stats),
    )
