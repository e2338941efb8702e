"""Pure scheduling rules for items in the learning queue."""
import logging
import time
from dataclasses import dataclass, replace

from wordqueue.models.queue_models import (
    CardResponse,
    ResponseResult,
    Stage,
    WordLearningItem,
)
from wordqueue.services.stage_policy import (
    DAY_MS,
    REQUIRED_CONSECUTIVE_CORRECT,
    REQUIRED_CONSECUTIVE_WRONG,
    RETRY_DELAY_MS,
    next_stage,
    previous_stage,
    stage_delay,
    stage_progress,
)

logger = logging.getLogger(__name__)


def current_time_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def create_item(word_id: int, now: int) -> WordLearningItem:
    """Create a queue item for a word entering at the passive stage."""
    if word_id < 0:
        raise ValueError(f"word_id must be non-negative, got {word_id}")

    return WordLearningItem(
        word_id=word_id,
        stage=Stage.PASSIVE,
        consecutive_correct=0,
        consecutive_wrong=0,
        show_after=now,  # Available immediately for passive learning
        attempts=0,
        added_at=now,
        last_seen=0,
    )


def calculate_next_show_time(stage: Stage, base_time: int) -> int:
    """Calculate when a word scheduled into ``stage`` should next be shown."""
    return base_time + stage_delay(stage)


def apply_response(item: WordLearningItem, response: CardResponse) -> ResponseResult:
    """Apply a user response to an item.

    The item passed in is left untouched; the result carries an updated copy
    and flags describing what happened. At most one of ``was_promoted``,
    ``was_demoted`` and ``was_learned`` is set.

    When ``was_learned`` is set the caller is expected to drop the item from
    the queue and record the word as learned; the copy keeps its stage.
    """
    if response.word_id != item.word_id:
        raise ValueError(
            f"Response for word {response.word_id} applied to item {item.word_id}"
        )

    updated = replace(item)
    updated.attempts += 1
    updated.last_seen = response.timestamp
    # Show times never precede the item entering the queue
    base_time = max(response.timestamp, item.added_at)
    result = ResponseResult(updated_item=updated)

    if response.known:
        updated.consecutive_correct += 1
        updated.consecutive_wrong = 0

        if updated.consecutive_correct >= REQUIRED_CONSECUTIVE_CORRECT:
            target = next_stage(updated.stage)
            if target is not None:
                updated.stage = target
                updated.consecutive_correct = 0
                updated.show_after = calculate_next_show_time(target, base_time)
                result.stage_changed = True
                result.was_promoted = True
            else:
                result.was_learned = True
    else:
        updated.consecutive_wrong += 1
        updated.consecutive_correct = 0

        if updated.consecutive_wrong >= REQUIRED_CONSECUTIVE_WRONG:
            target = previous_stage(updated.stage)
            if target is not None:
                updated.stage = target
                updated.consecutive_wrong = 0
                updated.show_after = calculate_next_show_time(target, base_time)
                result.stage_changed = True
                result.was_demoted = True
            else:
                # Can't regress further
                updated.consecutive_wrong = 0
        else:
            updated.show_after = base_time + RETRY_DELAY_MS

    logger.debug(
        "Word %d: known=%s stage=%s correct=%d wrong=%d promoted=%s demoted=%s learned=%s",
        updated.word_id,
        response.known,
        updated.stage.value,
        updated.consecutive_correct,
        updated.consecutive_wrong,
        result.was_promoted,
        result.was_demoted,
        result.was_learned,
    )
    return result


def reschedule_item(item: WordLearningItem, new_show_after: int) -> WordLearningItem:
    """Return a copy of ``item`` with a manually chosen show time."""
    return replace(item, show_after=new_show_after)


def reset_item_progress(item: WordLearningItem) -> WordLearningItem:
    """Return a copy of ``item`` with both streak counters cleared."""
    return replace(item, consecutive_correct=0, consecutive_wrong=0)


@dataclass
class WordEfficiencyMetrics:
    """Per-word learning metrics for analytics."""
    attempts: int
    days_since_added: float
    progress_rate: float  # 0-1 scale based on stage


def word_efficiency_metrics(item: WordLearningItem, now: int) -> WordEfficiencyMetrics:
    return WordEfficiencyMetrics(
        attempts=item.attempts,
        days_since_added=(now - item.added_at) / DAY_MS,
        progress_rate=stage_progress(item.stage),
    )
