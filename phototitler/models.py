from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from phototitler.database import Base

SETTINGS_ID = 1


class Photo(Base):
    __tablename__ = "photos"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    filename: Mapped[str] = mapped_column(
        String, unique=True, index=True, nullable=False
    )
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    transcription: Mapped[str] = mapped_column(Text, nullable=False, default="")
    theme: Mapped[str] = mapped_column(String, nullable=False, default="")
    fixed_theme: Mapped[str] = mapped_column(String, nullable=False, default="")
    audio_key: Mapped[str | None] = mapped_column(String, nullable=True)
    input_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    output_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class Settings(Base):
    """Singleton row (id 1) holding generation bounds and label lists."""

    __tablename__ = "settings"

    id: Mapped[int] = mapped_column(primary_key=True, default=SETTINGS_ID)
    title_min_chars: Mapped[int] = mapped_column(Integer, nullable=False, default=20)
    title_max_chars: Mapped[int] = mapped_column(Integer, nullable=False, default=80)
    desc_min_chars: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    desc_max_chars: Mapped[int] = mapped_column(Integer, nullable=False, default=500)
    instructions: Mapped[str] = mapped_column(Text, nullable=False, default="")
    photographer_url: Mapped[str] = mapped_column(String, nullable=False, default="")
    # JSON-serialized lists of labels
    themes: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    fixed_themes: Mapped[str] = mapped_column(Text, nullable=False, default="[]")


class ReferenceDocument(Base):
    __tablename__ = "pdf_files"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    original_filename: Mapped[str] = mapped_column(String, nullable=False)
    stored_filename: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
