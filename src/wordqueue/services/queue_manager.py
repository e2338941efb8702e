"""Read-only queries over the learning queue."""
import logging
from typing import Any, Iterable, List, Mapping, Optional

from wordqueue.models.queue_models import (
    QueueStats,
    Stage,
    StageCounts,
    ValidationResult,
    WordLearningItem,
)
from wordqueue.services.stage_policy import (
    REQUIRED_CONSECUTIVE_CORRECT,
    REQUIRED_CONSECUTIVE_WRONG,
    STAGE_ORDER,
    stage_rank,
)

logger = logging.getLogger(__name__)

_INT_FIELDS = (
    "word_id",
    "consecutive_correct",
    "consecutive_wrong",
    "show_after",
    "attempts",
    "added_at",
    "last_seen",
)


def available_words(queue: Iterable[WordLearningItem], now: int) -> List[WordLearningItem]:
    """Get words available for study now (show_after <= now)."""
    return [item for item in queue if item.show_after <= now]


def scheduled_words(queue: Iterable[WordLearningItem], now: int) -> List[WordLearningItem]:
    """Get words scheduled for later (show_after > now)."""
    return [item for item in queue if item.show_after > now]


def words_by_stage(queue: Iterable[WordLearningItem], stage: Stage) -> List[WordLearningItem]:
    """Get words at a specific stage."""
    return [item for item in queue if item.stage == stage]


def overdue_words(queue: Iterable[WordLearningItem], now: int) -> List[WordLearningItem]:
    """Get words past their show time, ignoring the always-available passive stage."""
    return [
        item for item in queue
        if item.show_after < now and item.stage != Stage.PASSIVE
    ]


def next_word_to_study(
    queue: Iterable[WordLearningItem], now: int
) -> Optional[WordLearningItem]:
    """Pick the next word to study.

    Priority: most overdue first, then by stage order
    (passive -> active -> review1 -> review2 -> review3), then by earliest
    show time.
    """
    candidates = available_words(queue, now)
    if not candidates:
        return None

    return min(
        candidates,
        key=lambda item: (
            -max(0, now - item.show_after),
            stage_rank(item.stage),
            item.show_after,
        ),
    )


def generate_queue_stats(
    queue: Iterable[WordLearningItem], learned_words: Iterable[int], now: int
) -> QueueStats:
    """Count available, scheduled and total words per stage."""
    stats = QueueStats(
        stages={stage: StageCounts() for stage in STAGE_ORDER},
        learned=len(list(learned_words)),
    )

    for item in queue:
        counts = stats.stages[item.stage]
        counts.total += 1
        if item.show_after <= now:
            counts.available += 1
        else:
            counts.scheduled += 1

    return stats


def find_item(queue: Iterable[WordLearningItem], word_id: int) -> Optional[WordLearningItem]:
    """Get the queue item for ``word_id``, if any."""
    for item in queue:
        if item.word_id == word_id:
            return item
    return None


def remove_word(queue: Iterable[WordLearningItem], word_id: int) -> List[WordLearningItem]:
    """Return the queue without the item for ``word_id``."""
    return [item for item in queue if item.word_id != word_id]


def validate_item(item: WordLearningItem, now: int) -> ValidationResult:
    """Check the structural invariants of a queue item."""
    errors: List[str] = []

    if item.word_id < 0:
        errors.append("word_id must be non-negative")

    if not isinstance(item.stage, Stage):
        errors.append("Invalid stage")

    if item.consecutive_correct < 0 or item.consecutive_correct > REQUIRED_CONSECUTIVE_CORRECT:
        errors.append("consecutive_correct out of valid range")

    if item.consecutive_wrong < 0 or item.consecutive_wrong > REQUIRED_CONSECUTIVE_WRONG:
        errors.append("consecutive_wrong out of valid range")

    if item.attempts < 0:
        errors.append("attempts must be non-negative")

    if item.added_at > now:
        errors.append("added_at cannot be in the future")

    if item.show_after < item.added_at:
        errors.append("show_after cannot be before added_at")

    return ValidationResult(is_valid=not errors, errors=errors)


def item_from_dict(data: Any) -> Optional[WordLearningItem]:
    """Build an item from imported JSON, or None when fields are missing or mistyped."""
    if not isinstance(data, Mapping):
        return None

    values = {}
    for name in _INT_FIELDS:
        value = data.get(name)
        # bool is an int subclass but never a valid counter or timestamp
        if not isinstance(value, int) or isinstance(value, bool):
            return None
        values[name] = value

    try:
        stage = Stage(data.get("stage"))
    except (TypeError, ValueError):
        return None

    return WordLearningItem(stage=stage, **values)
