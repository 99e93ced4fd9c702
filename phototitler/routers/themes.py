from typing import Annotated

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from phototitler.ai.client import ModelClient
from phototitler.deps import get_current_user, get_db, get_model_client, get_storage
from phototitler.schemas import ThemeAssignRequest, ThemeAssignResponse
from phototitler.storage import ObjectStorage
from phototitler.themes import ThemePartitioner

router = APIRouter(dependencies=[Depends(get_current_user)])


@router.post("/themes/assign", response_model=ThemeAssignResponse)
def assign_themes(
    body: Annotated[ThemeAssignRequest, Body(...)],
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[ObjectStorage, Depends(get_storage)],
    client: Annotated[ModelClient, Depends(get_model_client)],
) -> ThemeAssignResponse:
    """
    Split the whole collection into num_themes labelled groups. Token counts
    in the response are for the single call, before amortization.
    """
    outcome = ThemePartitioner(db, storage, client).assign(body.num_themes)
    return ThemeAssignResponse(**outcome.model_dump())
