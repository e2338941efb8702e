"""Learning service owning the session state of the unified queue."""
import json
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from wordqueue.config import EXPORT_VERSION, LEVEL_STARTING_INDEX
from wordqueue.models.queue_models import (
    CardDirection,
    CardResponse,
    CurrentCard,
    DailyStats,
    LearningMode,
    LearningState,
    LevelTestResult,
    QueueStats,
    ResponseResult,
    Stage,
    WordLearningItem,
)
from wordqueue.monitoring import error_count, responses, stage_transitions, words_added
from wordqueue.services import queue_manager
from wordqueue.services.scheduler import (
    WordEfficiencyMetrics,
    apply_response,
    create_item,
    current_time_ms,
    reschedule_item,
    reset_item_progress,
    word_efficiency_metrics,
)
from wordqueue.services.stage_policy import STAGE_ORDER
from wordqueue.services.state_codec import create_default_state, date_for, state_from_dict

logger = logging.getLogger(__name__)


@dataclass
class LearningAnalytics:
    """Read-only summary of the learning state."""
    total_words: int
    words_learned: int
    average_attempts_per_stage: Dict[Stage, float] = field(default_factory=dict)
    learning_efficiency: float = 0.0
    word_metrics: Dict[int, WordEfficiencyMetrics] = field(default_factory=dict)


class LearningService:
    """Service for managing the learning queue of one session.

    ``words`` is the vocabulary collaborator (anything with
    ``get_word_by_index``) and ``storage`` the persistence collaborator
    (anything with ``save(state)``). When a storage is given, the state is
    saved after every mutating operation; mutations returning a bool return
    False when that save fails, and ``last_save_ok`` holds the outcome of the
    latest save. ``clock`` returns the current time in milliseconds.
    """

    def __init__(
        self,
        state: Optional[LearningState] = None,
        words=None,
        storage=None,
        clock: Callable[[], int] = current_time_ms,
    ):
        """Initialize the service with an existing state or a fresh one."""
        self.clock = clock
        self.words = words
        self.storage = storage
        self.last_save_ok = True
        self.state = state if state is not None else create_default_state(self.clock())

    def _commit(self) -> bool:
        """Hand the state to the storage, if any."""
        if self.storage is not None:
            self.last_save_ok = bool(self.storage.save(self.state))
        return self.last_save_ok

    def _find_index(self, word_id: int) -> Optional[int]:
        for index, item in enumerate(self.state.learning_queue):
            if item.word_id == word_id:
                return index
        return None

    def _caller_error(self, error_type: str, message: str, *args: Any) -> None:
        logger.warning(message, *args)
        error_count.labels(error_type=error_type).inc()

    # --- queue mutations ---

    def add_word(self, word_id: int) -> bool:
        """Add a new word to the learning queue.

        Returns False when the word is already queued or learned, or when the
        id is invalid.
        """
        if word_id < 0:
            self._caller_error("invalid_word_id", "Cannot add negative word id %d", word_id)
            return False

        state = self.state
        if word_id in state.learned_words or self._find_index(word_id) is not None:
            return False

        state.learning_queue.append(create_item(word_id, self.clock()))
        state.progress = max(state.progress, word_id)
        state.today_stats.new_words += 1
        words_added.inc()
        logger.info("Added word %d to the learning queue", word_id)
        return self._commit()

    def add_word_to_learned(self, word_id: int) -> bool:
        """Record a word as learned without going through the queue."""
        if word_id < 0:
            self._caller_error("invalid_word_id", "Cannot mark negative word id %d as learned", word_id)
            return False

        state = self.state
        if word_id in state.learned_words:
            return False

        state.learning_queue = queue_manager.remove_word(state.learning_queue, word_id)
        state.learned_words.append(word_id)
        state.words_learned += 1
        state.progress = max(state.progress, word_id + 1)
        return self._commit()

    def submit_response(self, response: CardResponse) -> Optional[ResponseResult]:
        """Process a user response to a card.

        Returns None, changing nothing, when the word is not queued or the
        response predates the word entering the queue.
        """
        index = self._find_index(response.word_id)
        if index is None:
            self._caller_error(
                "unknown_word", "Word %d not found in queue", response.word_id
            )
            return None

        state = self.state
        item = state.learning_queue[index]
        if response.timestamp < item.added_at:
            self._caller_error(
                "stale_response",
                "Response for word %d at %d predates its addition at %d",
                response.word_id,
                response.timestamp,
                item.added_at,
            )
            return None

        result = apply_response(item, response)
        responses.labels(known=str(response.known).lower()).inc()

        if result.was_learned:
            state.learning_queue.pop(index)
            state.learned_words.append(response.word_id)
            state.words_learned += 1
            stage_transitions.labels(kind="learned").inc()
            logger.info("Word %d is learned", response.word_id)
        else:
            state.learning_queue[index] = result.updated_item
            if result.was_promoted:
                stage_transitions.labels(kind="promoted").inc()
            elif result.was_demoted:
                stage_transitions.labels(kind="demoted").inc()

        if result.stage_changed:
            state.words_reviewed += 1
        state.last_activity = response.timestamp
        state.today_stats.review_words += 1
        self._commit()
        return result

    def reset_item_progress(self, word_id: int) -> bool:
        """Clear the streak counters of a word without changing its stage."""
        index = self._find_index(word_id)
        if index is None:
            self._caller_error("unknown_word", "Cannot reset word %d: not in queue", word_id)
            return False

        queue = self.state.learning_queue
        queue[index] = reset_item_progress(queue[index])
        return self._commit()

    def reschedule(self, word_id: int, new_show_after: int) -> bool:
        """Override when a word is shown next."""
        index = self._find_index(word_id)
        if index is None:
            self._caller_error("unknown_word", "Cannot reschedule word %d: not in queue", word_id)
            return False

        queue = self.state.learning_queue
        queue[index] = reschedule_item(queue[index], new_show_after)
        return self._commit()

    # --- session state ---

    def switch_mode(self, mode: Union[LearningMode, str]) -> bool:
        """Switch the learning mode."""
        try:
            mode = LearningMode(mode)
        except ValueError:
            self._caller_error("invalid_mode", "Unknown learning mode %r", mode)
            return False

        self.state.current_mode = mode
        self.state.last_activity = self.clock()
        return self._commit()

    def update_detected_level(self, level: str) -> bool:
        """Update the level detected by the placement test."""
        if level not in LEVEL_STARTING_INDEX:
            self._caller_error("invalid_level", "Unknown level %r", level)
            return False

        self.state.detected_level = level
        return self._commit()

    def initialize_learning(
        self, level: str, test_results: Iterable[LevelTestResult] = ()
    ) -> int:
        """Start over from the placement test outcome.

        Words answered as known are recorded as learned; ``progress`` stays at
        the level's starting index so unknown words below the known ones are
        still offered. Returns the word index learning starts at for ``level``.
        """
        if level not in LEVEL_STARTING_INDEX:
            raise ValueError(f"Unknown level {level!r}")

        starting_index = LEVEL_STARTING_INDEX[level]
        state = create_default_state(self.clock())
        state.detected_level = level
        state.level_test_results = list(test_results)
        state.progress = starting_index
        for result in state.level_test_results:
            if result.known and result.word_id >= 0 and result.word_id not in state.learned_words:
                state.learned_words.append(result.word_id)
        state.words_learned = len(state.learned_words)
        self.state = state
        logger.info(
            "Learning initialized at level %s (index %d, %d known)",
            level,
            starting_index,
            state.words_learned,
        )
        self._commit()
        return starting_index

    def reset_all(self) -> bool:
        """Reset all progress."""
        self.state = create_default_state(self.clock())
        logger.info("Learning state reset")
        return self._commit()

    def start_new_day(self, today: Optional[str] = None) -> bool:
        """Roll the daily statistics over to ``today`` (ISO date).

        The streak grows when the previous day had activity and was exactly
        yesterday; otherwise it starts again at 1. Returns False when the
        statistics already belong to ``today`` or the rollover was not saved.
        """
        if today is None:
            today = date_for(self.clock())

        stats = self.state.today_stats
        if stats.date == today:
            return False

        streak = 1
        try:
            previous = date.fromisoformat(stats.date)
            had_activity = stats.new_words > 0 or stats.review_words > 0
            if had_activity and date.fromisoformat(today) - previous == timedelta(days=1):
                streak = stats.streak_days + 1
        except ValueError:
            logger.warning("Unreadable stats date %r, restarting streak", stats.date)

        self.state.today_stats = DailyStats(date=today, streak_days=streak)
        return self._commit()

    def record_time_spent(self, seconds: float) -> bool:
        """Add study time to today's statistics."""
        if seconds < 0:
            self._caller_error("invalid_time", "Ignoring negative time spent %s", seconds)
            return False
        self.state.today_stats.time_spent += seconds
        return self._commit()

    # --- queries ---

    def next_word(self, now: Optional[int] = None) -> Optional[WordLearningItem]:
        """Get the next item to study."""
        now = self.clock() if now is None else now
        return queue_manager.next_word_to_study(self.state.learning_queue, now)

    def next_card(self, now: Optional[int] = None) -> Optional[CurrentCard]:
        """Get the next card to show, joined with its vocabulary data."""
        item = self.next_word(now)
        if item is None:
            return None

        word_data = self.words.get_word_by_index(item.word_id) if self.words else None
        if word_data is None:
            logger.warning("No vocabulary entry for word %d", item.word_id)
            return None

        if item.stage == Stage.PASSIVE:
            direction = CardDirection.PASSIVE
        else:
            direction = CardDirection.ACTIVE

        return CurrentCard(
            word_id=item.word_id,
            word=word_data.word,
            props=list(word_data.props),
            translations=list(word_data.translations),
            direction=direction,
            stage=item.stage,
            attempts=item.attempts,
            consecutive_correct=item.consecutive_correct,
            consecutive_wrong=item.consecutive_wrong,
        )

    def queue_stats(self, now: Optional[int] = None) -> QueueStats:
        """Get per-stage queue statistics."""
        now = self.clock() if now is None else now
        return queue_manager.generate_queue_stats(
            self.state.learning_queue, self.state.learned_words, now
        )

    def available_count(self, now: Optional[int] = None) -> int:
        now = self.clock() if now is None else now
        return len(queue_manager.available_words(self.state.learning_queue, now))

    def overdue_count(self, now: Optional[int] = None) -> int:
        now = self.clock() if now is None else now
        return len(queue_manager.overdue_words(self.state.learning_queue, now))

    def words_by_stage(self, stage: Stage) -> List[WordLearningItem]:
        return queue_manager.words_by_stage(self.state.learning_queue, stage)

    def analytics(self) -> LearningAnalytics:
        """Get learning analytics."""
        queue = self.state.learning_queue
        learned = len(self.state.learned_words)

        averages: Dict[Stage, float] = {}
        for stage in STAGE_ORDER:
            items = queue_manager.words_by_stage(queue, stage)
            averages[stage] = sum(item.attempts for item in items) / len(items) if items else 0.0

        # Learned words / total attempts
        total_attempts = sum(item.attempts for item in queue)
        efficiency = learned / total_attempts if total_attempts > 0 else 0.0

        now = self.clock()
        return LearningAnalytics(
            total_words=len(queue) + learned,
            words_learned=learned,
            average_attempts_per_stage=averages,
            learning_efficiency=efficiency,
            word_metrics={item.word_id: word_efficiency_metrics(item, now) for item in queue},
        )

    # --- import/export ---

    def export_snapshot(self) -> Dict[str, Any]:
        """Export learning data for backup."""
        data = self.state.to_dict()
        data["exported_at"] = self.clock()
        data["version"] = EXPORT_VERSION
        return data

    def export_json(self) -> str:
        return json.dumps(self.export_snapshot(), indent=2)

    def import_snapshot(self, data: Any) -> bool:
        """Import learning data from a backup.

        Fields are coerced one by one and invalid queue items dropped. Returns
        False, leaving the current state untouched, when ``data`` is not an
        object at all.
        """
        if not isinstance(data, dict):
            self._caller_error("invalid_import", "Imported learning data is not an object")
            return False

        self.state = state_from_dict(data, self.clock())
        logger.info(
            "Imported learning data: %d queued, %d learned",
            len(self.state.learning_queue),
            len(self.state.learned_words),
        )
        return self._commit()

    def import_json(self, text: str) -> bool:
        try:
            data = json.loads(text)
        except ValueError as e:
            self._caller_error("invalid_import", "Failed to import learning data: %s", str(e))
            return False
        return self.import_snapshot(data)
