from typing import Annotated

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from phototitler.dao import SettingsDAO
from phototitler.deps import get_current_user, get_db
from phototitler.errors import InvalidInputError
from phototitler.models import Settings
from phototitler.schemas import SettingsResponse, SettingsUpdateRequest
from phototitler.themes import dump_labels, load_labels

router = APIRouter(dependencies=[Depends(get_current_user)])

BOUND_PAIRS = (
    ("title_min_chars", "title_max_chars"),
    ("desc_min_chars", "desc_max_chars"),
)


def _settings_response(settings: Settings) -> SettingsResponse:
    return SettingsResponse(
        title_min_chars=settings.title_min_chars,
        title_max_chars=settings.title_max_chars,
        desc_min_chars=settings.desc_min_chars,
        desc_max_chars=settings.desc_max_chars,
        instructions=settings.instructions,
        photographer_url=settings.photographer_url,
        themes=load_labels(settings.themes),
        fixed_themes=load_labels(settings.fixed_themes),
    )


@router.get("/settings", response_model=SettingsResponse)
def get_settings(db: Annotated[Session, Depends(get_db)]) -> SettingsResponse:
    return _settings_response(SettingsDAO(db).get_or_create())


@router.put("/settings", response_model=SettingsResponse)
def put_settings(
    db: Annotated[Session, Depends(get_db)],
    body: Annotated[SettingsUpdateRequest, Body(...)],
) -> SettingsResponse:
    """Partial update; a min bound above its max after merging is rejected."""
    dao = SettingsDAO(db)
    current = dao.get_or_create()
    fields = body.model_dump(exclude_unset=True, exclude_none=True)
    for low, high in BOUND_PAIRS:
        merged_low = fields.get(low, getattr(current, low))
        merged_high = fields.get(high, getattr(current, high))
        if merged_low > merged_high:
            msg = f"{low} ({merged_low}) must not exceed {high} ({merged_high})"
            raise InvalidInputError(msg)
    for key in ("themes", "fixed_themes"):
        if key in fields:
            fields[key] = dump_labels(fields[key])
    return _settings_response(dao.update(**fields))
