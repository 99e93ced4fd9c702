"""
Single-photo title and description generation.

gather -> compose -> dispatch -> decode -> persist, sequentially, with one
model call per invocation. Nothing is written until the decoded response
is in hand, so a failed call leaves the stored metadata untouched.
"""

import logging

from pydantic import BaseModel
from sqlalchemy.orm import Session

from phototitler.ai.client import ModelClient
from phototitler.ai.decoder import decode_metadata
from phototitler.ai.prompts import (
    MAX_REFERENCE_DOCUMENTS,
    ContextDocument,
    compose_generation_request,
    mime_type_for,
)
from phototitler.dao import PhotoDAO, ReferenceDocumentDAO, SettingsDAO
from phototitler.errors import (
    AssetNotFoundError,
    ConfigurationMissingError,
    InvalidInputError,
)
from phototitler.storage import PDFS_PREFIX, ObjectStorage, StorageError

logger = logging.getLogger(__name__)


class GenerationResult(BaseModel):
    title: str
    description: str
    transcription: str
    input_tokens: int
    output_tokens: int


class PhotoMetadataGenerator:
    def __init__(self, db: Session, storage: ObjectStorage, client: ModelClient) -> None:
        self.db = db
        self.storage = storage
        self.client = client

    def load_documents(self) -> list[ContextDocument]:
        """Fetch reference PDFs, skipping any that cannot be read."""
        documents = []
        for record in ReferenceDocumentDAO(self.db).list()[:MAX_REFERENCE_DOCUMENTS]:
            try:
                data = self.storage.get_object(PDFS_PREFIX + record.stored_filename)
            except (AssetNotFoundError, StorageError) as exc:
                logger.warning(
                    "Skipping reference document %s: %s", record.original_filename, exc
                )
                continue
            documents.append(ContextDocument(name=record.original_filename, data=data))
        return documents

    def generate(self, filename: str, transcription: str) -> GenerationResult:
        if not filename or not filename.strip():
            msg = "filename must not be blank"
            raise InvalidInputError(msg)
        if not transcription or not transcription.strip():
            msg = "transcription must not be empty"
            raise InvalidInputError(msg)

        settings = SettingsDAO(self.db).get()
        if settings is None:
            msg = "Settings are not configured"
            raise ConfigurationMissingError(msg)
        image = self.storage.get_photo(filename)
        documents = self.load_documents()

        request = compose_generation_request(
            transcription,
            image,
            mime_type_for(filename),
            settings,
            documents,
        )
        completion = self.client.complete(request)
        metadata = decode_metadata(completion.text)

        photo = PhotoDAO(self.db).save_generation(
            filename,
            title=metadata.title,
            description=metadata.description,
            transcription=transcription,
            input_tokens=completion.input_tokens,
            output_tokens=completion.output_tokens,
        )
        logger.info(
            "Generated metadata for %s with %d reference documents "
            "(call: %d/%d tokens, cumulative: %d/%d)",
            filename,
            len(documents),
            completion.input_tokens,
            completion.output_tokens,
            photo.input_tokens,
            photo.output_tokens,
        )
        return GenerationResult(
            title=photo.title,
            description=photo.description,
            transcription=photo.transcription,
            input_tokens=photo.input_tokens,
            output_tokens=photo.output_tokens,
        )
