"""Tests for queue queries."""
import random
from typing import List

import pytest
from faker import Faker

from wordqueue.models.queue_models import Stage, WordLearningItem
from wordqueue.services import queue_manager
from wordqueue.services.scheduler import create_item
from wordqueue.services.stage_policy import HOUR_MS, MINUTE_MS, STAGE_ORDER

fake = Faker()

T0 = 1_700_000_000_000


def make_item(word_id: int, stage: Stage, show_after: int, added_at: int = T0 - HOUR_MS) -> WordLearningItem:
    """Create a queue item at a given stage and show time."""
    return WordLearningItem(word_id=word_id, stage=stage, show_after=show_after, added_at=added_at)


@pytest.fixture
def queue() -> List[WordLearningItem]:
    """Create a small mixed queue."""
    return [
        make_item(1, Stage.PASSIVE, T0),
        make_item(2, Stage.ACTIVE, T0 - MINUTE_MS),
        make_item(3, Stage.REVIEW1, T0 + HOUR_MS),
        make_item(4, Stage.REVIEW2, T0 - 2 * HOUR_MS),
        make_item(5, Stage.PASSIVE, T0 - MINUTE_MS),
    ]


def test_available_and_scheduled(queue: List[WordLearningItem]) -> None:
    """Test splitting the queue by show time."""
    available = queue_manager.available_words(queue, T0)
    scheduled = queue_manager.scheduled_words(queue, T0)

    assert {item.word_id for item in available} == {1, 2, 4, 5}
    assert [item.word_id for item in scheduled] == [3]


def test_words_by_stage(queue: List[WordLearningItem]) -> None:
    """Test filtering by stage."""
    assert [item.word_id for item in queue_manager.words_by_stage(queue, Stage.PASSIVE)] == [1, 5]
    assert queue_manager.words_by_stage(queue, Stage.REVIEW3) == []


def test_overdue_words_exclude_passive(queue: List[WordLearningItem]) -> None:
    """Test that passive words are never overdue."""
    overdue = queue_manager.overdue_words(queue, T0)
    assert {item.word_id for item in overdue} == {2, 4}


def test_next_word_most_overdue_first(queue: List[WordLearningItem]) -> None:
    """Test that the most overdue word is picked first."""
    assert queue_manager.next_word_to_study(queue, T0).word_id == 4


def test_next_word_empty_queue() -> None:
    """Test that nothing is picked from an empty or fully scheduled queue."""
    assert queue_manager.next_word_to_study([], T0) is None
    assert queue_manager.next_word_to_study([make_item(1, Stage.ACTIVE, T0 + 1)], T0) is None


def test_next_word_stage_tie_break() -> None:
    """Test that equally overdue words are ordered by stage."""
    queue = [
        make_item(1, Stage.REVIEW1, T0),
        make_item(2, Stage.PASSIVE, T0),
        make_item(3, Stage.ACTIVE, T0),
    ]
    assert queue_manager.next_word_to_study(queue, T0).word_id == 2


def test_next_word_is_deterministic() -> None:
    """Test that the pick does not depend on queue order."""
    queue = [
        make_item(1, Stage.ACTIVE, T0 - MINUTE_MS),
        make_item(2, Stage.ACTIVE, T0 - MINUTE_MS),
        make_item(3, Stage.REVIEW1, T0 - MINUTE_MS),
    ]
    picks = set()
    for _ in range(10):
        random.shuffle(queue)
        picks.add(queue_manager.next_word_to_study(queue, T0).word_id)
    assert len(picks) == 1


def test_generate_queue_stats(queue: List[WordLearningItem]) -> None:
    """Test per-stage statistics."""
    stats = queue_manager.generate_queue_stats(queue, [10, 11], T0)

    assert stats.learned == 2
    assert stats[Stage.PASSIVE].available == 2
    assert stats[Stage.PASSIVE].scheduled == 0
    assert stats[Stage.REVIEW1].scheduled == 1
    assert stats[Stage.REVIEW3].total == 0
    assert stats.to_dict()["review2"] == {"available": 1, "scheduled": 0, "total": 1}


def test_stats_sum_law() -> None:
    """Test that stats add up for random queues and times."""
    for _ in range(50):
        queue = [
            make_item(
                word_id,
                fake.random_element(STAGE_ORDER),
                T0 + fake.random_int(-10 * HOUR_MS, 10 * HOUR_MS),
                added_at=T0 - 20 * HOUR_MS,
            )
            for word_id in range(fake.random_int(0, 30))
        ]
        now = T0 + fake.random_int(-10 * HOUR_MS, 10 * HOUR_MS)
        stats = queue_manager.generate_queue_stats(queue, [], now)

        for stage in STAGE_ORDER:
            counts = stats[stage]
            assert counts.available + counts.scheduled == counts.total
        assert sum(stats[stage].total for stage in STAGE_ORDER) == len(queue)


def test_remove_and_find_word(queue: List[WordLearningItem]) -> None:
    """Test removing and finding an item by word id."""
    remaining = queue_manager.remove_word(queue, 3)
    assert len(remaining) == 4
    assert queue_manager.find_item(remaining, 3) is None
    assert queue_manager.find_item(queue, 3).stage == Stage.REVIEW1


def test_validate_item_valid() -> None:
    """Test that a freshly created item passes validation."""
    result = queue_manager.validate_item(create_item(0, T0), T0)
    assert result.is_valid
    assert result.errors == []


def test_validate_item_is_idempotent_on_defaults() -> None:
    """Test that default items keep passing validation."""
    item = create_item(3, T0)
    for _ in range(3):
        assert queue_manager.validate_item(item, T0).is_valid
        item = queue_manager.item_from_dict(item.to_dict())


def test_validate_item_errors() -> None:
    """Test that every violated constraint is reported."""
    item = WordLearningItem(
        word_id=-1,
        consecutive_correct=4,
        consecutive_wrong=-1,
        attempts=-2,
        added_at=T0 + 10,
        show_after=T0,
    )
    result = queue_manager.validate_item(item, T0)

    assert not result.is_valid
    assert result.errors == [
        "word_id must be non-negative",
        "consecutive_correct out of valid range",
        "consecutive_wrong out of valid range",
        "attempts must be non-negative",
        "added_at cannot be in the future",
        "show_after cannot be before added_at",
    ]


def test_item_from_dict() -> None:
    """Test parsing items from imported data."""
    item = make_item(9, Stage.REVIEW2, T0)
    assert queue_manager.item_from_dict(item.to_dict()) == item

    broken = item.to_dict()
    broken["stage"] = "review9"
    assert queue_manager.item_from_dict(broken) is None

    broken = item.to_dict()
    broken["attempts"] = "3"
    assert queue_manager.item_from_dict(broken) is None

    broken = item.to_dict()
    broken["attempts"] = True
    assert queue_manager.item_from_dict(broken) is None

    broken = item.to_dict()
    del broken["show_after"]
    assert queue_manager.item_from_dict(broken) is None

    assert queue_manager.item_from_dict("not an item") is None


if __name__ == "__main__":
    pytest.main([__file__])
