import pytest
from sqlalchemy.orm import Session

from conftest import FakeModelClient, MemoryStorage
from phototitler.dao import PhotoDAO, ReferenceDocumentDAO, SettingsDAO
from phototitler.errors import (
    AssetNotFoundError,
    ConfigurationMissingError,
    GenerationFailedError,
    InvalidInputError,
    MalformedResponseError,
)
from phototitler.generation import PhotoMetadataGenerator

METADATA = '{"title": "Horizon d\'or", "description": "Le soleil glisse sous la ligne de mer."}'


@pytest.fixture
def generator(
    session: Session, storage: MemoryStorage, model_client: FakeModelClient
) -> PhotoMetadataGenerator:
    SettingsDAO(session).get_or_create()
    storage.put_object("photos/sunset.jpg", b"img", "image/jpeg")
    return PhotoMetadataGenerator(session, storage, model_client)


def test_generate_persists_and_accumulates_usage(
    session: Session, generator: PhotoMetadataGenerator, model_client: FakeModelClient
) -> None:
    PhotoDAO(session).add_usage("sunset.jpg", 100, 50)
    model_client.queue(METADATA, 500, 120)

    result = generator.generate("sunset.jpg", "le soleil se couche sur la mer")

    assert result.title == "Horizon d'or"
    assert result.description == "Le soleil glisse sous la ligne de mer."
    assert result.transcription == "le soleil se couche sur la mer"
    assert (result.input_tokens, result.output_tokens) == (600, 170)
    photo = PhotoDAO(session).get("sunset.jpg")
    assert photo is not None
    assert photo.title == "Horizon d'or"
    assert (photo.input_tokens, photo.output_tokens) == (600, 170)


def test_generate_creates_record_on_first_use(
    session: Session, generator: PhotoMetadataGenerator, model_client: FakeModelClient
) -> None:
    model_client.queue(METADATA, 10, 5)
    result = generator.generate("sunset.jpg", "note")
    assert (result.input_tokens, result.output_tokens) == (10, 5)
    assert PhotoDAO(session).get("sunset.jpg") is not None


def test_generate_sends_documents_before_image(
    session: Session,
    storage: MemoryStorage,
    generator: PhotoMetadataGenerator,
    model_client: FakeModelClient,
) -> None:
    documents = ReferenceDocumentDAO(session)
    documents.create("bio.pdf", "1-bio.pdf")
    documents.create("missing.pdf", "2-missing.pdf")
    storage.put_object("pdfs/1-bio.pdf", b"%PDF-bio", "application/pdf")
    model_client.queue(METADATA, 1, 1)

    generator.generate("sunset.jpg", "note")

    request = model_client.requests[0]
    kinds = [block["type"] for block in request.content]
    assert kinds == ["document", "image", "text"]
    assert request.content[0]["title"] == "bio.pdf"


def test_generate_without_settings_makes_no_call(
    session: Session, storage: MemoryStorage, model_client: FakeModelClient
) -> None:
    storage.put_object("photos/sunset.jpg", b"img", "image/jpeg")
    generator = PhotoMetadataGenerator(session, storage, model_client)
    with pytest.raises(ConfigurationMissingError):
        generator.generate("sunset.jpg", "note")
    assert model_client.requests == []
    assert PhotoDAO(session).get("sunset.jpg") is None


def test_generate_missing_image(
    generator: PhotoMetadataGenerator, model_client: FakeModelClient
) -> None:
    with pytest.raises(AssetNotFoundError):
        generator.generate("nope.jpg", "note")
    assert model_client.requests == []


@pytest.mark.parametrize("transcription", ["", "   "])
def test_generate_rejects_empty_transcription(
    generator: PhotoMetadataGenerator, model_client: FakeModelClient, transcription: str
) -> None:
    with pytest.raises(InvalidInputError):
        generator.generate("sunset.jpg", transcription)
    assert model_client.requests == []


def test_failed_call_leaves_record_unchanged(
    session: Session, generator: PhotoMetadataGenerator, model_client: FakeModelClient
) -> None:
    PhotoDAO(session).upsert("sunset.jpg", title="Ancien titre")
    PhotoDAO(session).add_usage("sunset.jpg", 100, 50)
    model_client.error = GenerationFailedError("Claude API error: 529 Overloaded")

    with pytest.raises(GenerationFailedError):
        generator.generate("sunset.jpg", "note")

    photo = PhotoDAO(session).get("sunset.jpg")
    assert photo is not None
    assert photo.title == "Ancien titre"
    assert (photo.input_tokens, photo.output_tokens) == (100, 50)


def test_malformed_response_leaves_record_unchanged(
    session: Session, generator: PhotoMetadataGenerator, model_client: FakeModelClient
) -> None:
    PhotoDAO(session).upsert("sunset.jpg", title="Ancien titre")
    model_client.queue('{"title": "Sans descriptif"}', 400, 30)

    with pytest.raises(MalformedResponseError):
        generator.generate("sunset.jpg", "note")

    photo = PhotoDAO(session).get("sunset.jpg")
    assert photo is not None
    assert photo.title == "Ancien titre"
    assert photo.description == ""
    assert (photo.input_tokens, photo.output_tokens) == (0, 0)


def test_repeated_generation_is_monotonic(
    generator: PhotoMetadataGenerator, model_client: FakeModelClient
) -> None:
    previous = (0, 0)
    for usage in [(300, 80), (0, 0), (250, 90)]:
        model_client.queue(METADATA, *usage)
        result = generator.generate("sunset.jpg", "note")
        current = (result.input_tokens, result.output_tokens)
        assert current[0] >= previous[0]
        assert current[1] >= previous[1]
        previous = current
    assert previous == (550, 170)
