from io import BytesIO
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import PlainTextResponse
from openpyxl import Workbook
from sqlalchemy.orm import Session

from phototitler.dao import PhotoDAO
from phototitler.deps import get_current_user, get_db, get_storage
from phototitler.storage import ObjectStorage

router = APIRouter(dependencies=[Depends(get_current_user)])

EXPORT_HEADER = ("Nom du fichier", "Titre", "Descriptif", "Thème")
EXPORT_BASENAME = "phototitler-export"
XLSX_SHEET_TITLE = "Photos"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _cell(value: str | None) -> str:
    return (value or "").replace("\t", " ").replace("\r", " ").replace("\n", " ")


def _rows(db: Session, storage: ObjectStorage) -> list[tuple[str, str, str, str]]:
    """One row per photo in collection order; photos without a record are blank."""
    filenames = storage.list_photos()
    records = {p.filename: p for p in PhotoDAO(db).list_by_filenames(filenames)}
    rows = []
    for filename in filenames:
        photo = records.get(filename)
        if photo is None:
            rows.append((filename, "", "", ""))
        else:
            rows.append(
                (filename, photo.title or "", photo.description or "", photo.theme or "")
            )
    return rows


def _attachment(extension: str) -> dict[str, str]:
    return {
        "Content-Disposition": f'attachment; filename="{EXPORT_BASENAME}.{extension}"'
    }


def _xlsx(rows: list[tuple[str, str, str, str]]) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = XLSX_SHEET_TITLE
    sheet.append(EXPORT_HEADER)
    for row in rows:
        sheet.append(row)
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


@router.get("/export")
def export_metadata(
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[ObjectStorage, Depends(get_storage)],
    export_format: Annotated[Literal["tsv", "xlsx"], Query(alias="format")] = "tsv",
) -> Response:
    """
    Export every photo's metadata in collection order, as TSV (default) or
    as an XLSX workbook with a single "Photos" sheet.
    """
    rows = _rows(db, storage)
    if export_format == "xlsx":
        return Response(
            content=_xlsx(rows),
            media_type=XLSX_MEDIA_TYPE,
            headers=_attachment("xlsx"),
        )
    lines = ["\t".join(EXPORT_HEADER)]
    lines.extend("\t".join(_cell(value) for value in row) for row in rows)
    return PlainTextResponse(
        "\n".join(lines),
        media_type="text/tab-separated-values; charset=utf-8",
        headers=_attachment("tsv"),
    )
