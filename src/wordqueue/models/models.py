"""Database models for the scheduler."""
from sqlalchemy import JSON, Column, Integer, String, Text

from wordqueue.models.base import Base, TimestampMixin


class Word(Base, TimestampMixin):
    """Vocabulary entry, keyed by its position in the word list."""

    __tablename__ = "words"

    id = Column(Integer, primary_key=True, autoincrement=False)
    text = Column(String, nullable=False)
    props = Column(JSON, nullable=False, default=list)  # e.g. part of speech, gender
    translations = Column(JSON, nullable=False, default=list)


class StateSnapshot(Base, TimestampMixin):
    """Serialized learning state of one session."""

    __tablename__ = "state_snapshots"

    id = Column(Integer, primary_key=True)
    key = Column(String, unique=True, nullable=False, index=True)
    payload = Column(Text, nullable=False)  # JSON document with schema_version
