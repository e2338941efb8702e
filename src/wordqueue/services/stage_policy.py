"""Stage graph, thresholds and delays of the learning queue."""
from typing import Dict, List, Optional

from wordqueue.models.queue_models import Stage

MINUTE_MS = 1000 * 60
HOUR_MS = MINUTE_MS * 60
DAY_MS = HOUR_MS * 24

# Required consecutive correct answers to advance
REQUIRED_CONSECUTIVE_CORRECT = 3

# Required consecutive wrong answers to regress
REQUIRED_CONSECUTIVE_WRONG = 3

# Delay after a wrong answer that did not trigger a regression
RETRY_DELAY_MS = 5 * MINUTE_MS

STAGE_ORDER: List[Stage] = [
    Stage.PASSIVE,
    Stage.ACTIVE,
    Stage.REVIEW1,
    Stage.REVIEW2,
    Stage.REVIEW3,
]

STAGE_PROGRESSION: Dict[Stage, Optional[Stage]] = {
    Stage.PASSIVE: Stage.ACTIVE,
    Stage.ACTIVE: Stage.REVIEW1,
    Stage.REVIEW1: Stage.REVIEW2,
    Stage.REVIEW2: Stage.REVIEW3,
    Stage.REVIEW3: None,  # Next step is learned
}

STAGE_REGRESSION: Dict[Stage, Optional[Stage]] = {
    Stage.PASSIVE: None,  # Can't go back from passive
    Stage.ACTIVE: Stage.PASSIVE,
    Stage.REVIEW1: Stage.ACTIVE,
    Stage.REVIEW2: Stage.REVIEW1,
    Stage.REVIEW3: Stage.REVIEW2,
}

# Delay before a word scheduled into a stage becomes visible again
STAGE_DELAYS_MS: Dict[Stage, int] = {
    Stage.PASSIVE: 0,
    Stage.ACTIVE: HOUR_MS,
    Stage.REVIEW1: DAY_MS,
    Stage.REVIEW2: 3 * DAY_MS,
    Stage.REVIEW3: 7 * DAY_MS,
}

# Share of the way to "learned" each stage represents
STAGE_PROGRESS: Dict[Stage, float] = {
    Stage.PASSIVE: 0.2,
    Stage.ACTIVE: 0.4,
    Stage.REVIEW1: 0.6,
    Stage.REVIEW2: 0.8,
    Stage.REVIEW3: 1.0,
}


def next_stage(stage: Stage) -> Optional[Stage]:
    """Stage after ``stage``, or None when the word graduates."""
    return STAGE_PROGRESSION[stage]


def previous_stage(stage: Stage) -> Optional[Stage]:
    """Stage before ``stage``, or None at the entry stage."""
    return STAGE_REGRESSION[stage]


def stage_delay(stage: Stage) -> int:
    """Delay in milliseconds for a word scheduled into ``stage``."""
    return STAGE_DELAYS_MS[stage]


def stage_rank(stage: Stage) -> int:
    """Position of ``stage`` in the progression, passive first."""
    return STAGE_ORDER.index(stage)


def stage_progress(stage: Stage) -> float:
    return STAGE_PROGRESS[stage]
