from typing import Annotated

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from phototitler.ai.client import ModelClient
from phototitler.deps import get_current_user, get_db, get_model_client, get_storage
from phototitler.generation import PhotoMetadataGenerator
from phototitler.schemas import GenerateRequest, GenerateResponse
from phototitler.storage import ObjectStorage
from phototitler.usage import estimate_cost_eur

router = APIRouter(dependencies=[Depends(get_current_user)])


@router.post("/generate", response_model=GenerateResponse)
def generate(
    body: Annotated[GenerateRequest, Body(...)],
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[ObjectStorage, Depends(get_storage)],
    client: Annotated[ModelClient, Depends(get_model_client)],
) -> GenerateResponse:
    """
    Generate and store a title and description for one photo from the
    photographer's transcript. Token counts in the response are the photo's
    running totals.
    """
    result = PhotoMetadataGenerator(db, storage, client).generate(
        body.filename, body.transcription
    )
    return GenerateResponse(
        **result.model_dump(),
        estimated_cost_eur=estimate_cost_eur(result.input_tokens, result.output_tokens),
    )
