"""Command line entry point for the scheduler."""
import argparse
import logging
import sys
from typing import List, Optional

from wordqueue.config import LEVEL_STARTING_INDEX, ensure_directories, settings
from wordqueue.logging_config import setup_logging
from wordqueue.models.base import SessionLocal, init_db
from wordqueue.models.queue_models import (
    CardDirection,
    CardResponse,
    CurrentCard,
    LevelTestResult,
)
from wordqueue.monitoring import start_monitoring
from wordqueue.services.learning_service import LearningService
from wordqueue.services.scheduler import current_time_ms
from wordqueue.services.stage_policy import STAGE_ORDER
from wordqueue.services.storage_service import StorageService
from wordqueue.services.word_service import WordService

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wordqueue", description="Vocabulary learning scheduler")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    commands = parser.add_subparsers(dest="command", required=True)

    load_words = commands.add_parser("load-words", help="Load the vocabulary from a JSON file")
    load_words.add_argument("path", nargs="?", default=None)

    add = commands.add_parser("add", help="Add words to the learning queue")
    add.add_argument("word_ids", nargs="+", type=int)

    study = commands.add_parser("study", help="Study due cards")
    study.add_argument(
        "--new",
        type=int,
        default=settings.learning.new_words_per_session,
        help="Number of new words to add before studying",
    )

    commands.add_parser("stats", help="Show queue statistics")

    placement = commands.add_parser("placement", help="Start over at a placement level")
    placement.add_argument("level", choices=sorted(LEVEL_STARTING_INDEX))
    placement.add_argument(
        "--known", nargs="*", type=int, default=[], help="Word ids answered correctly in the test"
    )
    placement.add_argument(
        "--unknown", nargs="*", type=int, default=[], help="Word ids missed in the test"
    )

    export = commands.add_parser("export", help="Export learning data")
    export.add_argument("path")

    import_ = commands.add_parser("import", help="Import learning data")
    import_.add_argument("path")

    commands.add_parser("reset", help="Reset all progress")
    return parser


def add_new_words(service: LearningService, count: int, word_count: int) -> int:
    """Queue up to ``count`` words not seen yet, starting at the current progress."""
    added = 0
    index = service.state.progress
    while added < count and index < word_count:
        if service.add_word(index):
            added += 1
        index += 1
    return added


def render_card(card: CurrentCard) -> str:
    """Format the question side of a card."""
    if card.direction == CardDirection.PASSIVE:
        question = card.word
        if card.props:
            question += f" ({', '.join(card.props)})"
    else:
        question = ", ".join(card.translations)
    return f"[{card.stage.value}] {question}"


def render_answer(card: CurrentCard) -> str:
    if card.direction == CardDirection.PASSIVE:
        return ", ".join(card.translations)
    return card.word


def study(service: LearningService, new_words: int, word_count: int) -> None:
    """Run an interactive study session on stdin/stdout."""
    add_new_words(service, new_words, word_count)
    started = current_time_ms()
    try:
        while True:
            card = service.next_card()
            if card is None:
                print("Nothing to study right now.")
                break

            print(render_card(card))
            input("Press Enter to reveal...")
            print(f"  -> {render_answer(card)}")
            answer = input("Did you know it? [y/n/q] ").strip().lower()
            if answer == "q":
                break

            result = service.submit_response(
                CardResponse(word_id=card.word_id, known=answer == "y", timestamp=current_time_ms())
            )
            if result is not None and result.was_learned:
                print("  Learned!")
            elif result is not None and result.was_promoted:
                print(f"  Promoted to {result.updated_item.stage.value}")
            elif result is not None and result.was_demoted:
                print(f"  Moved back to {result.updated_item.stage.value}")
    except (EOFError, KeyboardInterrupt):
        print()
    finally:
        service.record_time_spent((current_time_ms() - started) / 1000)


def print_stats(service: LearningService) -> None:
    stats = service.queue_stats()
    analytics = service.analytics()
    for stage in STAGE_ORDER:
        counts = stats[stage]
        print(
            f"{stage.value:8} available={counts.available} "
            f"scheduled={counts.scheduled} total={counts.total}"
        )
    print(f"learned  {stats.learned}")
    print(f"overdue  {service.overdue_count()}")
    print(f"efficiency {analytics.learning_efficiency:.3f}")
    today = service.state.today_stats
    print(
        f"today {today.date}: new={today.new_words} reviews={today.review_words} "
        f"time={today.time_spent:.0f}s streak={today.streak_days}"
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Run the command line interface."""
    args = build_parser().parse_args(argv)

    ensure_directories()
    setup_logging("Starting wordqueue ...", args.log_level)
    if settings.monitoring.enabled:
        start_monitoring(settings.monitoring.port)

    init_db()
    db = SessionLocal()
    try:
        storage = StorageService(db)
        words = WordService(db)

        if args.command == "load-words":
            path = args.path or settings.paths.vocabulary_file
            count = words.load_words_from_file(path)
            print(f"Loaded {count} words from {path}")
            return 0

        state = storage.load()
        if state is None:
            logger.info("No previous session found, starting fresh")
        service = LearningService(state=state, words=words, storage=storage)
        service.start_new_day()

        if args.command == "add":
            for word_id in args.word_ids:
                service.add_word(word_id)
        elif args.command == "study":
            study(service, args.new, words.word_count())
        elif args.command == "stats":
            print_stats(service)
        elif args.command == "placement":
            results = [LevelTestResult(word_id=word_id, known=True) for word_id in args.known]
            results += [LevelTestResult(word_id=word_id, known=False) for word_id in args.unknown]
            start = service.initialize_learning(args.level, results)
            print(f"Learning starts at word {start}")
        elif args.command == "export":
            with open(args.path, "w", encoding="utf-8") as f:
                f.write(service.export_json())
        elif args.command == "import":
            with open(args.path, encoding="utf-8") as f:
                if not service.import_json(f.read()):
                    print(f"Could not import {args.path}", file=sys.stderr)
                    return 1
        elif args.command == "reset":
            service.reset_all()

        if not service.last_save_ok:
            print("Could not save learning state", file=sys.stderr)
            return 1
        return 0
    except (OSError, KeyError, ValueError) as e:
        logger.error("Command %s failed: %s", args.command, str(e))
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
