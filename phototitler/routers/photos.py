from typing import Annotated

from fastapi import APIRouter, Body, Depends, Request, Response
from sqlalchemy.orm import Session

from phototitler.ai.prompts import mime_type_for
from phototitler.dao import PhotoDAO
from phototitler.deps import get_current_user, get_db, get_raw_body, get_storage
from phototitler.errors import AssetNotFoundError, InvalidInputError
from phototitler.models import Photo
from phototitler.schemas import (
    AudioResponse,
    MetadataUpdateRequest,
    PhotoListItem,
    PhotoListResponse,
    PhotoResponse,
)
from phototitler.storage import AUDIO_PREFIX, ObjectStorage
from phototitler.usage import estimate_cost_eur

router = APIRouter(dependencies=[Depends(get_current_user)])

AUDIO_CONTENT_TYPE = "audio/webm"


def _photo_response(filename: str, photo: Photo | None) -> PhotoResponse:
    if photo is None:
        return PhotoResponse(filename=filename)
    return PhotoResponse(
        filename=photo.filename,
        title=photo.title or "",
        description=photo.description or "",
        transcription=photo.transcription or "",
        theme=photo.theme or "",
        fixed_theme=photo.fixed_theme or "",
        has_audio=bool(photo.audio_key),
        input_tokens=photo.input_tokens,
        output_tokens=photo.output_tokens,
        estimated_cost_eur=estimate_cost_eur(photo.input_tokens, photo.output_tokens),
    )


@router.get("/photos", response_model=PhotoListResponse)
def get_photos(
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[ObjectStorage, Depends(get_storage)],
) -> PhotoListResponse:
    """
    List the collection in display order with completion flags and the
    collection's cumulative token usage.
    """
    filenames = storage.list_photos()
    dao = PhotoDAO(db)
    records = {p.filename: p for p in dao.list_by_filenames(filenames)}
    items = []
    for index, filename in enumerate(filenames):
        photo = records.get(filename)
        items.append(
            PhotoListItem(
                index=index,
                filename=filename,
                has_title=bool(photo and photo.title),
                has_description=bool(photo and photo.description),
                fixed_theme=(photo.fixed_theme or "") if photo else "",
            )
        )
    total_input, total_output = dao.usage_totals(filenames)
    return PhotoListResponse(
        photos=items,
        total=len(filenames),
        total_input_tokens=total_input,
        total_output_tokens=total_output,
        estimated_cost_eur=estimate_cost_eur(total_input, total_output),
    )


@router.get("/photos/{filename}", response_model=PhotoResponse)
def get_photo(
    filename: str,
    db: Annotated[Session, Depends(get_db)],
) -> PhotoResponse:
    return _photo_response(filename, PhotoDAO(db).get(filename))


@router.put("/photos/{filename}", response_model=PhotoResponse)
def put_photo_metadata(
    filename: str,
    db: Annotated[Session, Depends(get_db)],
    body: Annotated[MetadataUpdateRequest, Body(...)],
) -> PhotoResponse:
    """Manual edit: only the fields present in the body are overwritten."""
    fields = body.model_dump(exclude_unset=True, exclude_none=True)
    photo = PhotoDAO(db).upsert(filename, **fields)
    return _photo_response(filename, photo)


@router.get("/photos/{filename}/image")
def get_photo_image(
    filename: str,
    storage: Annotated[ObjectStorage, Depends(get_storage)],
) -> Response:
    return Response(
        content=storage.get_photo(filename),
        media_type=mime_type_for(filename),
        headers={"Cache-Control": "private, max-age=3600"},
    )


@router.post("/photos/{filename}/audio", response_model=AudioResponse)
def upload_photo_audio(
    filename: str,
    request: Request,
    data: Annotated[bytes, Depends(get_raw_body)],
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[ObjectStorage, Depends(get_storage)],
) -> AudioResponse:
    """Store the raw voice note for a photo, replacing any previous one."""
    if not data:
        msg = "Audio body is empty"
        raise InvalidInputError(msg)
    key = f"{AUDIO_PREFIX}{filename}.webm"
    storage.put_object(
        key, data, request.headers.get("content-type") or AUDIO_CONTENT_TYPE
    )
    PhotoDAO(db).upsert(filename, audio_key=key)
    return AudioResponse(audio_key=key)


@router.get("/photos/{filename}/audio")
def get_photo_audio(
    filename: str,
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[ObjectStorage, Depends(get_storage)],
) -> Response:
    photo = PhotoDAO(db).get(filename)
    if photo is None or not photo.audio_key:
        msg = "No audio recorded for this photo"
        raise AssetNotFoundError(msg)
    return Response(
        content=storage.get_object(photo.audio_key),
        media_type=AUDIO_CONTENT_TYPE,
        headers={"Cache-Control": "private, max-age=3600"},
    )
