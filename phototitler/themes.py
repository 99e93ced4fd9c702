"""
Collection-wide theme assignment.

One model call classifies every photo into one of N labels. Persistence
happens in three steps: themes for every photo (one transaction), the
call's usage amortized across every photo (a second transaction), then the
settings label list. A failure between the first two leaves themes
committed and usage not yet recorded.
"""

import json
import logging

from pydantic import BaseModel
from sqlalchemy.orm import Session

from phototitler.ai.client import ModelClient
from phototitler.ai.decoder import decode_theme_assignment
from phototitler.ai.prompts import (
    MAX_THEMES,
    MIN_THEMES,
    PhotoSummary,
    compose_theme_request,
)
from phototitler.dao import PhotoDAO, SettingsDAO
from phototitler.errors import EmptyCollectionError, InvalidInputError
from phototitler.storage import ObjectStorage
from phototitler.usage import amortize

logger = logging.getLogger(__name__)


def dump_labels(labels: list[str]) -> str:
    return json.dumps(labels, ensure_ascii=False)


def load_labels(serialized: str | None) -> list[str]:
    """Parse a stored label list; anything that is not a list of strings reads as empty."""
    if not serialized:
        return []
    try:
        labels = json.loads(serialized)
    except json.JSONDecodeError:
        logger.warning("Ignoring unparseable label list %r", serialized)
        return []
    if not isinstance(labels, list) or not all(isinstance(x, str) for x in labels):
        logger.warning("Ignoring label list that is not a list of strings")
        return []
    return labels


class ThemeAssignmentOutcome(BaseModel):
    themes: list[str]
    assignments: dict[str, str]
    input_tokens: int
    output_tokens: int


class ThemePartitioner:
    def __init__(self, db: Session, storage: ObjectStorage, client: ModelClient) -> None:
        self.db = db
        self.storage = storage
        self.client = client

    def gather(self, filenames: list[str]) -> list[PhotoSummary]:
        photos = {p.filename: p for p in PhotoDAO(self.db).list_by_filenames(filenames)}
        summaries = []
        for filename in filenames:
            photo = photos.get(filename)
            summaries.append(
                PhotoSummary(
                    filename=filename,
                    title=(photo.title or "") if photo else "",
                    description=(photo.description or "") if photo else "",
                )
            )
        return summaries

    def assign(self, num_themes: int) -> ThemeAssignmentOutcome:
        if not MIN_THEMES <= num_themes <= MAX_THEMES:
            msg = f"numThemes must be between {MIN_THEMES} and {MAX_THEMES}"
            raise InvalidInputError(msg)

        filenames = self.storage.list_photos()
        if not filenames:
            msg = "No photos found"
            raise EmptyCollectionError(msg)

        request = compose_theme_request(self.gather(filenames), num_themes)
        completion = self.client.complete(request)
        result = decode_theme_assignment(completion.text)

        if len(result.themes) != num_themes:
            logger.warning(
                "Requested %d themes, model returned %d", num_themes, len(result.themes)
            )
        unknown = set(result.assignments.values()) - set(result.themes)
        if unknown:
            logger.warning("Assignments use labels outside the theme list: %s", unknown)

        # Photos the model left out are stored as unassigned
        assignments = {name: result.assignments.get(name, "") for name in filenames}
        missing = sum(1 for theme in assignments.values() if not theme)
        if missing:
            logger.warning("%d photos left unassigned by the model", missing)

        photo_dao = PhotoDAO(self.db)
        photo_dao.assign_themes(assignments)

        per_input, per_output = amortize(
            completion.input_tokens, completion.output_tokens, len(filenames)
        )
        photo_dao.add_usage_bulk(filenames, per_input, per_output)

        SettingsDAO(self.db).update(themes=dump_labels(result.themes))

        logger.info(
            "Assigned %d themes across %d photos (call: %d/%d tokens, per photo: %d/%d)",
            len(result.themes),
            len(filenames),
            completion.input_tokens,
            completion.output_tokens,
            per_input,
            per_output,
        )
        return ThemeAssignmentOutcome(
            themes=result.themes,
            assignments=assignments,
            input_tokens=completion.input_tokens,
            output_tokens=completion.output_tokens,
        )
