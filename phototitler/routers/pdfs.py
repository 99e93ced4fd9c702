import uuid
from pathlib import PurePosixPath
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from phototitler.dao import MAX_PDFS, ReferenceDocumentDAO
from phototitler.deps import get_current_user, get_db, get_raw_body, get_storage
from phototitler.errors import InvalidInputError
from phototitler.models import ReferenceDocument
from phototitler.schemas import ReferenceDocumentListResponse, ReferenceDocumentResponse
from phototitler.storage import PDFS_PREFIX, ObjectStorage

router = APIRouter(dependencies=[Depends(get_current_user)])

PDF_CONTENT_TYPE = "application/pdf"
MAX_PDF_BYTES = 20 * 1024 * 1024


def _document_response(document: ReferenceDocument) -> ReferenceDocumentResponse:
    return ReferenceDocumentResponse(
        id=document.id,
        original_filename=document.original_filename,
        stored_filename=document.stored_filename,
    )


@router.get("/pdfs", response_model=ReferenceDocumentListResponse)
def list_pdfs(db: Annotated[Session, Depends(get_db)]) -> ReferenceDocumentListResponse:
    return ReferenceDocumentListResponse(
        pdfs=[_document_response(d) for d in ReferenceDocumentDAO(db).list()]
    )


@router.post(
    "/pdfs",
    response_model=ReferenceDocumentResponse,
    status_code=status.HTTP_201_CREATED,
)
def upload_pdf(
    data: Annotated[bytes, Depends(get_raw_body)],
    filename: Annotated[str, Query(min_length=1)],
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[ObjectStorage, Depends(get_storage)],
) -> ReferenceDocumentResponse:
    """
    Store a reference PDF sent as the raw request body and register it.
    At most MAX_PDFS documents may exist at once.
    """
    dao = ReferenceDocumentDAO(db)
    if dao.count() >= MAX_PDFS:
        msg = (
            f"Maximum {MAX_PDFS} PDF files reached. "
            "Delete one before adding another."
        )
        raise InvalidInputError(msg)
    if not data:
        msg = "PDF body is empty"
        raise InvalidInputError(msg)
    if len(data) > MAX_PDF_BYTES:
        msg = f"PDF exceeds {MAX_PDF_BYTES // (1024 * 1024)} MB"
        raise InvalidInputError(msg)

    display_name = PurePosixPath(filename).name
    stored_filename = f"{uuid.uuid4().hex}-{display_name}"
    key = PDFS_PREFIX + stored_filename
    storage.put_object(key, data, PDF_CONTENT_TYPE)
    try:
        document = dao.create(display_name, stored_filename)
    except Exception:
        storage.delete_object(key)
        raise
    return _document_response(document)


@router.delete("/pdfs/{document_id}")
def delete_pdf(
    document_id: int,
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[ObjectStorage, Depends(get_storage)],
) -> JSONResponse:
    dao = ReferenceDocumentDAO(db)
    document = dao.get(document_id)
    if document is None:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": "PDF not found"},
        )
    storage.delete_object(PDFS_PREFIX + document.stored_filename)
    dao.delete(document.id)
    return JSONResponse({"ok": True})
