import logging

from pydantic import BaseModel, ConfigDict, ValidationError

from phototitler.errors import MalformedResponseError

logger = logging.getLogger(__name__)


class GeneratedMetadata(BaseModel):
    model_config = ConfigDict(strict=True)

    title: str
    description: str


class _Assignment(BaseModel):
    model_config = ConfigDict(strict=True)

    filename: str
    theme: str


class _ThemePayload(BaseModel):
    model_config = ConfigDict(strict=True)

    themes: list[str]
    assignments: list[_Assignment]


class ThemeAssignment(BaseModel):
    themes: list[str]
    assignments: dict[str, str]


def _validation_message(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "<root>"
    return f"{location}: {first['msg']}"


def decode_metadata(text: str) -> GeneratedMetadata:
    """Parse a {title, description} response; any deviation is an error."""
    try:
        return GeneratedMetadata.model_validate_json(text)
    except ValidationError as exc:
        msg = f"Malformed title/description response ({_validation_message(exc)})"
        raise MalformedResponseError(msg) from exc


def decode_theme_assignment(text: str) -> ThemeAssignment:
    """
    Parse a {themes, assignments} response into labels and a filename
    lookup. When a filename is assigned more than once the last entry wins.
    """
    try:
        payload = _ThemePayload.model_validate_json(text)
    except ValidationError as exc:
        msg = f"Malformed theme assignment response ({_validation_message(exc)})"
        raise MalformedResponseError(msg) from exc

    assignments: dict[str, str] = {}
    for item in payload.assignments:
        if item.filename in assignments:
            logger.warning("Filename %s assigned more than once", item.filename)
        assignments[item.filename] = item.theme
    return ThemeAssignment(themes=payload.themes, assignments=assignments)
