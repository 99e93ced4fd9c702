"""
Request construction for the generative model.

Requests are provider-shaped (Anthropic Messages API content blocks) but
carry no transport details; ClaudeClient turns them into an HTTP call.
"""

import base64
from collections.abc import Callable, Sequence
from pathlib import PurePosixPath
from typing import Any, Protocol

from pydantic import BaseModel, Field

from phototitler.errors import InvalidInputError

MAX_REFERENCE_DOCUMENTS = 5
MIN_THEMES = 1
MAX_THEMES = 20

GENERATION_MAX_TOKENS = 1024
THEMES_MAX_TOKENS = 16384

IMAGE_MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".tiff": "image/tiff",
    ".tif": "image/tiff",
}

Block = dict[str, Any]
CacheMarker = Callable[[Block], Block]

GENERATION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "title": {"type": "string", "description": "Titre de la photo"},
        "description": {"type": "string", "description": "Descriptif de la photo"},
    },
    "required": ["title", "description"],
    "additionalProperties": False,
}


class GenerationSettings(Protocol):
    """Attributes of the Settings record the composer reads."""

    title_min_chars: int
    title_max_chars: int
    desc_min_chars: int
    desc_max_chars: int
    instructions: str
    photographer_url: str


class ContextDocument(BaseModel):
    """A reference PDF supplied as context on every generation call."""

    name: str
    data: bytes


class PhotoSummary(BaseModel):
    filename: str
    title: str = ""
    description: str = ""


class ModelRequest(BaseModel):
    system: list[Block]
    content: list[Block]
    output_schema: dict[str, Any]
    max_tokens: int = Field(gt=0)


def mark_cacheable(block: Block) -> Block:
    """Flag a block for provider-side prompt caching."""
    return {**block, "cache_control": {"type": "ephemeral"}}


def no_cache(block: Block) -> Block:
    return block


def mime_type_for(filename: str) -> str:
    return IMAGE_MIME_TYPES.get(
        PurePosixPath(filename).suffix.lower(), "application/octet-stream"
    )


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def build_generation_system_prompt(settings: GenerationSettings) -> str:
    parts = [
        "Tu es un assistant spécialisé dans la rédaction de titres et descriptifs "
        "pour des photographies d'art.",
        "Tu analyses l'image fournie et la transcription vocale du photographe "
        "pour proposer un titre et un descriptif.",
    ]
    if settings.photographer_url:
        parts.append(f"Site web du photographe : {settings.photographer_url}")
    if settings.instructions:
        parts.append(f"Consignes spécifiques du photographe :\n{settings.instructions}")
    parts.extend(
        [
            "Contraintes strictes :",
            f"- Le titre DOIT contenir entre {settings.title_min_chars} et "
            f"{settings.title_max_chars} caractères (espaces compris).",
            f"- Le descriptif DOIT contenir entre {settings.desc_min_chars} et "
            f"{settings.desc_max_chars} caractères (espaces compris).",
            "- Réponds uniquement avec le JSON demandé, sans autre texte.",
        ]
    )
    return "\n\n".join(parts)


def compose_generation_request(
    transcription: str,
    image: bytes,
    image_mime_type: str,
    settings: GenerationSettings,
    documents: Sequence[ContextDocument] = (),
    cache_marker: CacheMarker = mark_cacheable,
) -> ModelRequest:
    """
    Build the title/description request for one photo.

    User content order is fixed: reference documents, then the image, then
    the transcript. Cached prefixes depend on it.
    """
    if not transcription or not transcription.strip():
        msg = "transcription must not be empty"
        raise InvalidInputError(msg)
    if not image:
        msg = "image bytes must not be empty"
        raise InvalidInputError(msg)
    if len(documents) > MAX_REFERENCE_DOCUMENTS:
        msg = f"At most {MAX_REFERENCE_DOCUMENTS} reference documents are allowed"
        raise InvalidInputError(msg)

    system = [
        cache_marker(
            {"type": "text", "text": build_generation_system_prompt(settings)}
        )
    ]
    content: list[Block] = [
        cache_marker(
            {
                "type": "document",
                "source": {
                    "type": "base64",
                    "media_type": "application/pdf",
                    "data": _b64(document.data),
                },
                "title": document.name,
            }
        )
        for document in documents
    ]
    content.append(
        {
            "type": "image",
            "source": {
                "type": "base64",
                "media_type": image_mime_type,
                "data": _b64(image),
            },
        }
    )
    content.append(
        {
            "type": "text",
            "text": (
                f'Transcription du photographe :\n"{transcription}"\n\n'
                "Génère un titre et un descriptif pour cette photo."
            ),
        }
    )
    return ModelRequest(
        system=system,
        content=content,
        output_schema=GENERATION_SCHEMA,
        max_tokens=GENERATION_MAX_TOKENS,
    )


def theme_schema(num_themes: int) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "themes": {
                "type": "array",
                "items": {"type": "string"},
                "description": f"Liste des {num_themes} thèmes déterminés",
            },
            "assignments": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "filename": {"type": "string", "description": "Nom du fichier"},
                        "theme": {"type": "string", "description": "Thème attribué"},
                    },
                    "required": ["filename", "theme"],
                    "additionalProperties": False,
                },
                "description": "Liste des attributions filename → thème",
            },
        },
        "required": ["themes", "assignments"],
        "additionalProperties": False,
    }


def _describe_photo(photo: PhotoSummary) -> str:
    lines = [f"- [{photo.filename}]"]
    if photo.title:
        lines.append(f"  Titre : {photo.title}")
    if photo.description:
        lines.append(f"  Descriptif : {photo.description}")
    if not photo.title and not photo.description:
        lines.append("  (pas de métadonnées)")
    return "\n".join(lines)


def compose_theme_request(
    photos: Sequence[PhotoSummary],
    num_themes: int,
    cache_marker: CacheMarker = mark_cacheable,
) -> ModelRequest:
    """Build the single classification request covering the whole collection."""
    if not MIN_THEMES <= num_themes <= MAX_THEMES:
        msg = f"numThemes must be between {MIN_THEMES} and {MAX_THEMES}"
        raise InvalidInputError(msg)
    if not photos:
        msg = "At least one photo is required"
        raise InvalidInputError(msg)

    system_text = "\n\n".join(
        [
            "Tu es un assistant spécialisé dans la classification thématique "
            "de photographies d'art.",
            "Tu dois analyser la liste de photos ci-dessous et déterminer "
            f"exactement {num_themes} thèmes pertinents.",
            "Les thèmes doivent être courts (1 à 3 mots), en français.",
            "Chaque photo doit être attribuée à exactement un thème.",
            "La répartition doit être à peu près équilibrée entre les thèmes, "
            "tout en restant pertinente.",
            "Base-toi UNIQUEMENT sur les titres et descriptifs pour déterminer "
            "les thèmes. Ignore les noms de fichiers, ils ne sont pas pertinents.",
            "Si une photo n'a ni titre ni descriptif, attribue-la au thème le "
            "moins représenté.",
        ]
    )
    user_text = "\n".join(
        [
            f"Voici la liste des {len(photos)} photos :\n",
            "\n".join(_describe_photo(photo) for photo in photos),
            f"\nDétermine {num_themes} thèmes et attribue chaque photo à un thème.",
        ]
    )
    return ModelRequest(
        system=[cache_marker({"type": "text", "text": system_text})],
        content=[{"type": "text", "text": user_text}],
        output_schema=theme_schema(num_themes),
        max_tokens=THEMES_MAX_TOKENS,
    )
