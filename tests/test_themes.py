import json

import pytest
from sqlalchemy.orm import Session

from conftest import FakeModelClient, MemoryStorage
from phototitler.dao import PhotoDAO, SettingsDAO
from phototitler.errors import (
    EmptyCollectionError,
    InvalidInputError,
    MalformedResponseError,
)
from phototitler.themes import ThemePartitioner, dump_labels, load_labels


def _response(themes: list[str], assignments: dict[str, str]) -> str:
    return json.dumps(
        {
            "themes": themes,
            "assignments": [{"filename": f, "theme": t} for f, t in assignments.items()],
        }
    )


@pytest.fixture
def partitioner(
    session: Session, storage: MemoryStorage, model_client: FakeModelClient
) -> ThemePartitioner:
    for name in ("A.jpg", "B.jpg", "C.jpg"):
        storage.put_object(f"photos/{name}", b"img", "image/jpeg")
    storage.put_object("photos/notes.txt", b"text", "text/plain")
    photos = PhotoDAO(session)
    photos.upsert("A.jpg", title="Sous-bois", description="Brume entre les fougères")
    photos.upsert("C.jpg", title="Carrefour")
    return ThemePartitioner(session, storage, model_client)


def test_assign_partial_metadata(
    session: Session, partitioner: ThemePartitioner, model_client: FakeModelClient
) -> None:
    model_client.queue(
        _response(["Nature", "Ville"], {"A.jpg": "Nature", "B.jpg": "Nature", "C.jpg": "Ville"}),
        1000,
        101,
    )

    outcome = partitioner.assign(2)

    assert outcome.themes == ["Nature", "Ville"]
    assert (outcome.input_tokens, outcome.output_tokens) == (1000, 101)
    user_text = model_client.requests[0].content[0]["text"]
    assert "notes.txt" not in user_text
    assert user_text.count("(pas de métadonnées)") == 1

    photos = PhotoDAO(session)
    themes = {name: photos.get(name).theme for name in ("A.jpg", "B.jpg", "C.jpg")}  # type: ignore[union-attr]
    assert themes == {"A.jpg": "Nature", "B.jpg": "Nature", "C.jpg": "Ville"}
    settings = SettingsDAO(session).get()
    assert settings is not None
    assert load_labels(settings.themes) == ["Nature", "Ville"]


def test_assign_amortizes_usage_with_ceiling(
    session: Session, partitioner: ThemePartitioner, model_client: FakeModelClient
) -> None:
    PhotoDAO(session).add_usage("A.jpg", 10, 1)
    model_client.queue(
        _response(["Nature"], {"A.jpg": "Nature", "B.jpg": "Nature", "C.jpg": "Nature"}),
        1000,
        101,
    )

    partitioner.assign(1)

    photos = PhotoDAO(session)
    usage = {
        name: (p.input_tokens, p.output_tokens)
        for name in ("A.jpg", "B.jpg", "C.jpg")
        if (p := photos.get(name)) is not None
    }
    assert usage == {"A.jpg": (344, 35), "B.jpg": (334, 34), "C.jpg": (334, 34)}


def test_assign_stores_unassigned_as_empty(
    session: Session, partitioner: ThemePartitioner, model_client: FakeModelClient
) -> None:
    PhotoDAO(session).upsert("B.jpg", theme="Ancien")
    model_client.queue(_response(["Nature"], {"A.jpg": "Nature", "C.jpg": "Nature"}), 3, 3)

    outcome = partitioner.assign(1)

    assert outcome.assignments["B.jpg"] == ""
    photo = PhotoDAO(session).get("B.jpg")
    assert photo is not None
    assert photo.theme == ""
    assert (photo.input_tokens, photo.output_tokens) == (1, 1)


@pytest.mark.parametrize("num_themes", [0, 25])
def test_assign_rejects_out_of_range_without_dispatch(
    session: Session,
    partitioner: ThemePartitioner,
    model_client: FakeModelClient,
    num_themes: int,
) -> None:
    with pytest.raises(InvalidInputError):
        partitioner.assign(num_themes)
    assert model_client.requests == []
    assert SettingsDAO(session).get() is None


def test_assign_empty_collection(
    session: Session, storage: MemoryStorage, model_client: FakeModelClient
) -> None:
    SettingsDAO(session).update(themes=dump_labels(["Ancien"]))
    partitioner = ThemePartitioner(session, storage, model_client)

    with pytest.raises(EmptyCollectionError):
        partitioner.assign(3)

    assert model_client.requests == []
    settings = SettingsDAO(session).get()
    assert settings is not None
    assert load_labels(settings.themes) == ["Ancien"]


def test_assign_malformed_response_changes_nothing(
    session: Session, partitioner: ThemePartitioner, model_client: FakeModelClient
) -> None:
    model_client.queue('{"themes": ["Nature"]}', 500, 50)

    with pytest.raises(MalformedResponseError):
        partitioner.assign(1)

    photo = PhotoDAO(session).get("A.jpg")
    assert photo is not None
    assert photo.theme == ""
    assert (photo.input_tokens, photo.output_tokens) == (0, 0)
    assert SettingsDAO(session).get() is None


def test_label_round_trip_keeps_accents() -> None:
    serialized = dump_labels(["Forêt", "Été"])
    assert "Forêt" in serialized
    assert load_labels(serialized) == ["Forêt", "Été"]


@pytest.mark.parametrize("serialized", [None, "", "not json", '{"a": 1}', "[1, 2]"])
def test_load_labels_tolerates_bad_values(serialized: str | None) -> None:
    assert load_labels(serialized) == []
