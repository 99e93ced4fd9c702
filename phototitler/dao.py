from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from phototitler.errors import InvalidInputError
from phototitler.models import SETTINGS_ID, Photo, ReferenceDocument, Settings
from phototitler.usage import check_delta

MAX_PDFS = 5

PHOTO_EDITABLE_FIELDS = frozenset(
    {"title", "description", "transcription", "theme", "fixed_theme", "audio_key"}
)
SETTINGS_EDITABLE_FIELDS = frozenset(
    {
        "title_min_chars",
        "title_max_chars",
        "desc_min_chars",
        "desc_max_chars",
        "instructions",
        "photographer_url",
        "themes",
        "fixed_themes",
    }
)


def _check_fields(fields: Mapping[str, Any], allowed: frozenset[str]) -> None:
    unknown = set(fields) - allowed
    if unknown:
        msg = f"Unknown fields: {', '.join(sorted(unknown))}"
        raise InvalidInputError(msg)


class PhotoDAO:
    """
    Data Access Object for Photo.

    Records are keyed by filename and created on first write; there is no
    explicit creation step.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, filename: str) -> Photo | None:
        return self.db.scalars(select(Photo).where(Photo.filename == filename)).first()

    def list_by_filenames(self, filenames: Iterable[str]) -> Sequence[Photo]:
        names = list(filenames)
        if not names:
            return []
        return self.db.scalars(select(Photo).where(Photo.filename.in_(names))).all()

    def _get_or_new(self, filename: str) -> Photo:
        photo = self.get(filename)
        if photo is None:
            photo = Photo(
                filename=filename,
                title="",
                description="",
                transcription="",
                theme="",
                fixed_theme="",
                input_tokens=0,
                output_tokens=0,
            )
            self.db.add(photo)
        return photo

    def _add_usage(self, photo: Photo, input_tokens: int, output_tokens: int) -> None:
        """Increment the counters in SQL, never from the loaded values. The caller commits."""
        check_delta(input_tokens, output_tokens)
        self.db.flush()
        self.db.execute(
            update(Photo)
            .where(Photo.id == photo.id)
            .values(
                input_tokens=Photo.input_tokens + input_tokens,
                output_tokens=Photo.output_tokens + output_tokens,
            )
            .execution_options(synchronize_session=False)
        )
        self.db.expire(photo, ["input_tokens", "output_tokens"])

    def upsert(self, filename: str, **fields: Any) -> Photo:
        """Create the record if absent, then overwrite the given fields."""
        if not filename or not filename.strip():
            msg = "filename must not be blank"
            raise InvalidInputError(msg)
        _check_fields(fields, PHOTO_EDITABLE_FIELDS)
        photo = self._get_or_new(filename)
        for name, value in fields.items():
            setattr(photo, name, value)
        self.db.commit()
        self.db.refresh(photo)
        return photo

    def save_generation(
        self,
        filename: str,
        *,
        title: str,
        description: str,
        transcription: str,
        input_tokens: int,
        output_tokens: int,
    ) -> Photo:
        """Overwrite the generated text and add the call's usage in one commit."""
        photo = self._get_or_new(filename)
        photo.title = title
        photo.description = description
        photo.transcription = transcription
        self._add_usage(photo, input_tokens, output_tokens)
        self.db.commit()
        self.db.refresh(photo)
        return photo

    def add_usage(self, filename: str, input_tokens: int, output_tokens: int) -> Photo:
        photo = self._get_or_new(filename)
        self._add_usage(photo, input_tokens, output_tokens)
        self.db.commit()
        self.db.refresh(photo)
        return photo

    def assign_themes(self, assignments: Mapping[str, str]) -> None:
        """Set the theme of every filename in a single transaction."""
        try:
            for filename, theme in assignments.items():
                self._get_or_new(filename).theme = theme
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def add_usage_bulk(
        self, filenames: Iterable[str], input_tokens: int, output_tokens: int
    ) -> None:
        """Add the same usage to every filename in a single transaction."""
        try:
            for filename in filenames:
                self._add_usage(self._get_or_new(filename), input_tokens, output_tokens)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def usage_totals(self, filenames: Iterable[str] | None = None) -> tuple[int, int]:
        """Cumulative (input, output) tokens, optionally restricted to filenames."""
        stmt = select(
            func.coalesce(func.sum(Photo.input_tokens), 0),
            func.coalesce(func.sum(Photo.output_tokens), 0),
        )
        if filenames is not None:
            names = list(filenames)
            if not names:
                return 0, 0
            stmt = stmt.where(Photo.filename.in_(names))
        total_input, total_output = self.db.execute(stmt).one()
        return int(total_input), int(total_output)


class SettingsDAO:
    """Data Access Object for the Settings singleton."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self) -> Settings | None:
        return self.db.get(Settings, SETTINGS_ID)

    def _new(self) -> Settings:
        settings = Settings(
            id=SETTINGS_ID,
            title_min_chars=20,
            title_max_chars=80,
            desc_min_chars=100,
            desc_max_chars=500,
            instructions="",
            photographer_url="",
            themes="[]",
            fixed_themes="[]",
        )
        self.db.add(settings)
        return settings

    def get_or_create(self) -> Settings:
        settings = self.get()
        if settings is None:
            settings = self._new()
            self.db.commit()
            self.db.refresh(settings)
        return settings

    def update(self, **fields: Any) -> Settings:
        _check_fields(fields, SETTINGS_EDITABLE_FIELDS)
        settings = self.get() or self._new()
        for name, value in fields.items():
            setattr(settings, name, value)
        self.db.commit()
        self.db.refresh(settings)
        return settings


class ReferenceDocumentDAO:
    """Data Access Object for ReferenceDocument."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, document_id: int) -> ReferenceDocument | None:
        return self.db.get(ReferenceDocument, document_id)

    def list(self) -> Sequence[ReferenceDocument]:
        return self.db.scalars(
            select(ReferenceDocument).order_by(
                ReferenceDocument.created_at.desc(), ReferenceDocument.id.desc()
            )
        ).all()

    def count(self) -> int:
        return self.db.scalar(select(func.count()).select_from(ReferenceDocument)) or 0

    def create(self, original_filename: str, stored_filename: str) -> ReferenceDocument:
        if self.count() >= MAX_PDFS:
            msg = (
                f"Maximum {MAX_PDFS} PDF files reached. "
                "Delete one before adding another."
            )
            raise InvalidInputError(msg)
        document = ReferenceDocument(
            original_filename=original_filename, stored_filename=stored_filename
        )
        self.db.add(document)
        self.db.commit()
        self.db.refresh(document)
        return document

    def delete(self, document_id: int) -> bool:
        document = self.get(document_id)
        if document is None:
            return False
        self.db.delete(document)
        self.db.commit()
        return True
