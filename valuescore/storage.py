"""
Extraction Store — Durable Record of Every Extraction

Provides a small store interface with a SQLAlchemy-backed implementation
(SQLite for local dev, any SQLAlchemy URL such as Postgres in production).
Each extraction becomes one row: input text, parsed object or NULL, model
label, generated id and creation timestamp.
"""

import logging
import os
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from valuescore.errors import ConfigurationError, PersistenceError

logger = logging.getLogger(__name__)

Base = declarative_base()


class ExtractionModel(Base):
    __tablename__ = "extractions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    input_text = Column(Text, nullable=False)
    result = Column(JSON(none_as_null=True), nullable=True)
    model = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)


@dataclass(frozen=True)
class PersistedRecord:
    """Identifier and timestamp generated by the store."""
    id: int | str
    created_at: datetime


class ExtractionStore(ABC):
    """Abstract base class for extraction stores."""

    backend_name = "abstract"

    @abstractmethod
    def save(self, input_text: str, result: dict | None, model_label: str) -> PersistedRecord:
        """
        Insert one extraction.

        Returns the generated id and timestamp. Raises PersistenceError
        on any failure.
        """
        ...


class SqlAlchemyExtractionStore(ExtractionStore):
    """SQLAlchemy-backed store. Creates its table on first use."""

    backend_name = "sqlalchemy"

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = database_url
        self._echo = echo
        self._engine = None
        self._session_maker = None
        # Saves run in worker threads; only one may build the engine
        self._init_lock = threading.Lock()

    def _get_session_maker(self):
        with self._init_lock:
            if self._session_maker is None:
                url = make_url(self.database_url)
                if url.get_backend_name() == "sqlite" and url.database:
                    os.makedirs(os.path.dirname(url.database) or ".", exist_ok=True)
                self._engine = create_engine(self.database_url, echo=self._echo)
                Base.metadata.create_all(self._engine)
                self._session_maker = sessionmaker(bind=self._engine, expire_on_commit=False)
                logger.info("Initialized extraction store (%s)",
                            url.render_as_string(hide_password=True))
        return self._session_maker

    def save(self, input_text: str, result: dict | None, model_label: str) -> PersistedRecord:
        try:
            session_maker = self._get_session_maker()
            with session_maker() as session:
                row = ExtractionModel(
                    input_text=input_text,
                    result=result,
                    model=model_label,
                    created_at=datetime.now(timezone.utc),
                )
                session.add(row)
                session.commit()
                logger.info("Saved extraction id=%s (result=%s)",
                            row.id, "object" if result is not None else "null")
                return PersistedRecord(id=row.id, created_at=row.created_at)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to save extraction: {e}") from e
        except OSError as e:
            raise PersistenceError(f"Failed to prepare database location: {e}") from e

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_maker = None


def create_store(database_url: str) -> ExtractionStore:
    """Factory function to create the configured extraction store."""
    if not database_url:
        raise ConfigurationError("DATABASE_URL must not be empty")
    return SqlAlchemyExtractionStore(database_url)
