"""Service for reading the vocabulary the queue refers to."""
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from sqlalchemy.orm import Session

from wordqueue.models.models import Word
from wordqueue.models.queue_models import WordData

logger = logging.getLogger(__name__)


class WordService:
    """Service for looking up words by their index in the word list."""

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db
        self._cache: Optional[Dict[int, WordData]] = None

    def _get_words_data(self) -> Dict[int, WordData]:
        """Load every word once and keep it in memory."""
        if self._cache is None:
            self._cache = {
                word.id: WordData(
                    id=word.id,
                    word=word.text,
                    props=list(word.props or []),
                    translations=list(word.translations or []),
                )
                for word in self.db.query(Word).order_by(Word.id).all()
            }
            if not self._cache:
                logger.warning("No word data available for learning")
        return self._cache

    def get_word_by_index(self, index: int) -> Optional[WordData]:
        """Get a word by its position in the word list."""
        return self._get_words_data().get(index)

    def word_count(self) -> int:
        """Get the number of words in the vocabulary."""
        return len(self._get_words_data())

    def clear_cache(self) -> None:
        """Forget cached words so the next lookup reads the database again."""
        self._cache = None

    def save_words(self, records: List[dict]) -> int:
        """Replace the vocabulary with ``records``; ids are list positions."""
        self.db.query(Word).delete()
        words = []
        for index, record in enumerate(records):
            words.append(
                Word(
                    id=index,
                    text=str(record["word"]),
                    props=list(record.get("props", [])),
                    translations=list(record.get("translations", [])),
                )
            )
        self.db.add_all(words)
        self.db.commit()
        self.clear_cache()
        logger.info("Saved %d words", len(words))
        return len(words)

    def load_words_from_file(self, path: Union[str, Path]) -> int:
        """Seed the vocabulary from a JSON list of ``{word, props, translations}``."""
        with open(path, encoding="utf-8") as f:
            records = json.load(f)
        if not isinstance(records, list):
            raise ValueError(f"{path} must contain a JSON list of words")
        return self.save_words(records)
