"""Transcript storage backed by SQLAlchemy."""

from pathlib import Path
from typing import Iterable, List

from sqlalchemy import Integer, String, Text, create_engine, delete, select
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from ytrans.config import Config
from ytrans.exceptions import PersistenceError
from ytrans.models import TranscriptRecord


class Base(DeclarativeBase):
    pass


class TranscriptionRow(Base):
    __tablename__ = "transcriptions"

    id: Mapped[int] = mapped_column(primary_key=True)
    yt_link: Mapped[str] = mapped_column(String(512), index=True)
    segment_index: Mapped[int] = mapped_column(Integer)
    start_time: Mapped[str] = mapped_column(String(32))
    end_time: Mapped[str] = mapped_column(String(32))
    text: Mapped[str] = mapped_column(Text)

    def to_record(self) -> TranscriptRecord:
        return TranscriptRecord(
            index=self.segment_index,
            start_time=self.start_time,
            end_time=self.end_time,
            text=self.text,
            yt_link=self.yt_link,
        )


def _ensure_sqlite_dir(database_url: str) -> None:
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)


class TranscriptionsRepository:
    """Stores one transcript per video link."""

    def __init__(self, database_url: str):
        try:
            _ensure_sqlite_dir(database_url)
            self.engine = create_engine(database_url)
            Base.metadata.create_all(self.engine)
        except (SQLAlchemyError, OSError) as e:
            raise PersistenceError(f"failed to open transcriptions database: {e}") from e
        self._sessions = sessionmaker(self.engine, expire_on_commit=False)

    @classmethod
    def from_config(cls, config: Config) -> "TranscriptionsRepository":
        return cls(config.database_url)

    def save_transcriptions(self, yt_link: str, records: Iterable[TranscriptRecord]) -> int:
        """Replace the stored transcript for ``yt_link``; return the number of rows written."""
        rows = [
            TranscriptionRow(
                yt_link=yt_link,
                segment_index=record.index,
                start_time=record.start_time,
                end_time=record.end_time,
                text=record.text,
            )
            for record in records
        ]
        try:
            with self._sessions.begin() as session:
                session.execute(delete(TranscriptionRow).where(TranscriptionRow.yt_link == yt_link))
                session.add_all(rows)
        except SQLAlchemyError as e:
            raise PersistenceError(f"failed to save transcriptions for {yt_link}: {e}") from e
        return len(rows)

    def get_transcriptions_by_link(self, yt_link: str) -> List[TranscriptRecord]:
        query = (
            select(TranscriptionRow)
            .where(TranscriptionRow.yt_link == yt_link)
            .order_by(TranscriptionRow.segment_index)
        )
        try:
            with self._sessions() as session:
                return [row.to_record() for row in session.scalars(query)]
        except SQLAlchemyError as e:
            raise PersistenceError(f"failed to get transcriptions for {yt_link}: {e}") from e

    def close(self) -> None:
        self.engine.dispose()
