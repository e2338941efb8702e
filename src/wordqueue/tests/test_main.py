"""Tests for the command line entry point."""
import json
from typing import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from wordqueue import __main__ as cli
from wordqueue.models.base import init_db
from wordqueue.models.queue_models import CardDirection, CurrentCard, Stage
from wordqueue.services.learning_service import LearningService
from wordqueue.services.storage_service import StorageService


@pytest.fixture
def session_factory(mocker) -> Generator[sessionmaker, None, None]:
    """Point the CLI at an in-memory database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    mocker.patch.object(cli, "SessionLocal", factory)
    mocker.patch.object(cli, "init_db", lambda: init_db(bind=engine))
    mocker.patch.object(cli, "setup_logging")
    mocker.patch.object(cli, "ensure_directories")
    yield factory
    engine.dispose()


@pytest.fixture
def vocabulary(tmp_path) -> str:
    """Write a small vocabulary file."""
    path = tmp_path / "words.json"
    path.write_text(
        json.dumps([{"word": f"mot{i}", "props": [], "translations": [f"word{i}"]} for i in range(5)]),
        encoding="utf-8",
    )
    return str(path)


def make_card(direction: CardDirection) -> CurrentCard:
    return CurrentCard(
        word_id=1,
        word="maison",
        props=["n", "f"],
        translations=["house", "home"],
        direction=direction,
        stage=Stage.PASSIVE if direction == CardDirection.PASSIVE else Stage.ACTIVE,
        attempts=0,
        consecutive_correct=0,
        consecutive_wrong=0,
    )


def test_render_card() -> None:
    """Test both card directions."""
    passive = make_card(CardDirection.PASSIVE)
    assert cli.render_card(passive) == "[passive] maison (n, f)"
    assert cli.render_answer(passive) == "house, home"

    active = make_card(CardDirection.ACTIVE)
    assert cli.render_card(active) == "[active] house, home"
    assert cli.render_answer(active) == "maison"


def test_add_new_words(clock) -> None:
    """Test queueing new words from the current progress."""
    service = LearningService(clock=clock)
    service.add_word_to_learned(0)

    assert cli.add_new_words(service, 3, 10) == 3
    assert [item.word_id for item in service.state.learning_queue] == [1, 2, 3]

    assert cli.add_new_words(service, 10, 5) == 1
    assert [item.word_id for item in service.state.learning_queue] == [1, 2, 3, 4]


def test_cli_session(session_factory, vocabulary: str, tmp_path, mocker, capsys) -> None:
    """Test loading words, studying and exporting through the CLI."""
    assert cli.main(["load-words", vocabulary]) == 0
    assert cli.main(["add", "0", "1"]) == 0

    mocker.patch("builtins.input", side_effect=["", "y", "", "q"])
    assert cli.main(["study", "--new", "0"]) == 0
    out = capsys.readouterr().out
    assert "[passive] mot0" in out
    assert "word0" in out

    export_path = tmp_path / "export.json"
    assert cli.main(["export", str(export_path)]) == 0
    data = json.loads(export_path.read_text(encoding="utf-8"))
    assert data["version"] == "1.0"
    assert [item["word_id"] for item in data["learning_queue"]] == [0, 1]
    assert data["learning_queue"][0]["consecutive_correct"] == 1

    assert cli.main(["reset"]) == 0
    assert cli.main(["import", str(export_path)]) == 0
    assert cli.main(["stats"]) == 0
    out = capsys.readouterr().out
    assert "passive  available=2 scheduled=0 total=2" in out


def test_cli_import_invalid_file(session_factory, tmp_path, capsys) -> None:
    """Test that an unreadable import fails cleanly."""
    path = tmp_path / "broken.json"
    path.write_text("{broken", encoding="utf-8")

    assert cli.main(["import", str(path)]) == 1
    assert "Could not import" in capsys.readouterr().err


def test_cli_placement_with_results(session_factory, tmp_path, capsys) -> None:
    """Test that words known in the placement test are recorded as learned."""
    assert cli.main(["placement", "B1", "--known", "2100", "2300", "--unknown", "2200"]) == 0
    assert "Learning starts at word 2000" in capsys.readouterr().out

    export_path = tmp_path / "export.json"
    assert cli.main(["export", str(export_path)]) == 0
    data = json.loads(export_path.read_text(encoding="utf-8"))
    assert data["detected_level"] == "B1"
    assert data["progress"] == 2000
    assert data["learned_words"] == [2100, 2300]
    assert len(data["level_test_results"]) == 3


def test_cli_reports_save_failure(session_factory, mocker, capsys) -> None:
    """Test that a command fails when the state cannot be saved."""
    mocker.patch.object(StorageService, "save", return_value=False)

    assert cli.main(["add", "0"]) == 1
    assert "Could not save learning state" in capsys.readouterr().err


def test_cli_missing_vocabulary_file(session_factory, tmp_path) -> None:
    """Test that a missing vocabulary file is reported."""
    assert cli.main(["load-words", str(tmp_path / "missing.json")]) == 1


if __name__ == "__main__":
    pytest.main([__file__])
