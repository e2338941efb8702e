"""Models for the unified learning queue."""
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List


class Stage(Enum):
    """Learning stages in order of progression."""
    PASSIVE = "passive"  # Learning language -> native, no delay
    ACTIVE = "active"  # Native -> learning language
    REVIEW1 = "review1"
    REVIEW2 = "review2"
    REVIEW3 = "review3"  # Last stage before the word is learned


class LearningMode(Enum):
    """Which screen the surrounding application shows."""
    LEARNING = "learning"
    REVIEWING = "reviewing"
    ADDING = "adding"


class CardDirection(Enum):
    """Direction a card is shown in."""
    PASSIVE = "passive"  # Learning language -> native language
    ACTIVE = "active"  # Native language -> learning language


@dataclass
class WordLearningItem:
    """Progress of a single word while it is in the learning queue."""
    word_id: int
    stage: Stage = Stage.PASSIVE
    consecutive_correct: int = 0
    consecutive_wrong: int = 0
    show_after: int = 0  # ms timestamp when the word becomes available
    attempts: int = 0
    added_at: int = 0
    last_seen: int = 0  # 0 until the first response

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        data = asdict(self)
        data["stage"] = self.stage.value
        return data


@dataclass
class CardResponse:
    """User's answer to a card."""
    word_id: int
    known: bool
    timestamp: int
    response_time: int = 0  # ms the user took to answer


@dataclass
class ResponseResult:
    """Outcome of applying a response to an item."""
    updated_item: WordLearningItem
    stage_changed: bool = False
    was_promoted: bool = False
    was_demoted: bool = False
    was_learned: bool = False


@dataclass
class ValidationResult:
    """Result of a structural check of a queue item."""
    is_valid: bool
    errors: List[str] = field(default_factory=list)


@dataclass
class StageCounts:
    """Available/scheduled split of one stage."""
    available: int = 0
    scheduled: int = 0
    total: int = 0


@dataclass
class QueueStats:
    """Per-stage counts plus the number of learned words."""
    stages: Dict[Stage, StageCounts] = field(
        default_factory=lambda: {stage: StageCounts() for stage in Stage}
    )
    learned: int = 0

    def __getitem__(self, stage: Stage) -> StageCounts:
        return self.stages[stage]

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {stage.value: asdict(counts) for stage, counts in self.stages.items()}
        data["learned"] = self.learned
        return data


@dataclass
class DailyStats:
    """Activity counters for one calendar day."""
    date: str
    new_words: int = 0
    review_words: int = 0
    time_spent: float = 0.0  # seconds
    streak_days: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class LevelTestResult:
    """Placement test answer for one word."""
    word_id: int
    known: bool


@dataclass
class LearningState:
    """Aggregate state of a learning session."""
    today_stats: DailyStats
    detected_level: str = "A1"
    level_test_results: List[LevelTestResult] = field(default_factory=list)
    progress: int = 0  # Highest word index reached
    words_learned: int = 0
    words_reviewed: int = 0
    learning_queue: List[WordLearningItem] = field(default_factory=list)
    learned_words: List[int] = field(default_factory=list)
    current_mode: LearningMode = LearningMode.LEARNING
    last_activity: int = 0
    session_start_time: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        return {
            "detected_level": self.detected_level,
            "level_test_results": [asdict(result) for result in self.level_test_results],
            "progress": self.progress,
            "words_learned": self.words_learned,
            "words_reviewed": self.words_reviewed,
            "learning_queue": [item.to_dict() for item in self.learning_queue],
            "learned_words": list(self.learned_words),
            "current_mode": self.current_mode.value,
            "last_activity": self.last_activity,
            "session_start_time": self.session_start_time,
            "today_stats": self.today_stats.to_dict(),
        }


@dataclass
class WordData:
    """Vocabulary record as seen by the scheduler."""
    id: int
    word: str
    props: List[str] = field(default_factory=list)
    translations: List[str] = field(default_factory=list)


@dataclass
class CurrentCard:
    """Display-ready card for the next word to study."""
    word_id: int
    word: str
    props: List[str]
    translations: List[str]
    direction: CardDirection
    stage: Stage
    attempts: int
    consecutive_correct: int
    consecutive_wrong: int
