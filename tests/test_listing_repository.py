"""
Tests for ListingRepository against an in-memory store.

Tests cover:
- Sequential id allocation (dense 1..N, retry on conflict)
- Ordering of list()
- Create normalization and rejection of invalid payloads
- Partial, idempotent updates by either identifier form
- Delete / delete_all and not-found handling
"""

import pytest

from vendecasas.errors import ListingNotFound, StoreFailure
from vendecasas.listings import ListingRepository
from vendecasas.models import Listing
from vendecasas.utils import SequentialId, StorageId, parse_identifier


@pytest.fixture
def repo(db_session):
    return ListingRepository(db_session, id_allocation_attempts=3)


def snapshot(listing: Listing) -> dict:
    """Listing state without the write timestamps."""
    return {
        "storage_id": listing.storage_id,
        "sequential_id": listing.sequential_id,
        "titulo": listing.titulo,
        "tipo": listing.tipo,
        "zona": listing.zona,
        "precio": listing.precio,
        "terreno_m2": listing.terreno_m2,
        "construccion_m2": listing.construccion_m2,
        "descripcion": listing.descripcion,
        "imagenes": listing.imagenes,
    }


class TestSequentialIds:

    def test_first_listing_gets_one(self, repo, listing_payload):
        assert repo.create(listing_payload()).sequential_id == 1

    def test_sequential_creates_are_dense(self, repo, listing_payload):
        ids = [repo.create(listing_payload(titulo=f"Casa {n}")).sequential_id for n in range(1, 8)]
        assert ids == list(range(1, 8))

    def test_client_supplied_ids_are_ignored(self, repo, listing_payload):
        listing = repo.create(listing_payload(id=99, _id="deadbeefdeadbeefdeadbeef"))
        assert listing.sequential_id == 1
        assert listing.storage_id != "deadbeefdeadbeefdeadbeef"

    def test_next_id_follows_current_maximum(self, repo, listing_payload):
        repo.create(listing_payload())
        repo.create(listing_payload())
        repo.create(listing_payload())
        repo.delete(SequentialId(1))
        assert repo.create(listing_payload()).sequential_id == 4

    def test_conflict_is_retried_with_fresh_maximum(self, repo, listing_payload, monkeypatch):
        repo.create(listing_payload())
        real_next = repo._next_sequential_id
        calls = []

        def stale_next():
            calls.append(1)
            # First attempt sees the maximum another create already consumed
            return 1 if len(calls) == 1 else real_next()

        monkeypatch.setattr(repo, "_next_sequential_id", stale_next)

        listing = repo.create(listing_payload(titulo="Casa 2"))
        assert listing.sequential_id == 2
        assert len(calls) == 2
        assert [item.sequential_id for item in repo.list()] == [1, 2]

    def test_gives_up_after_configured_attempts(self, repo, listing_payload, monkeypatch):
        repo.create(listing_payload())
        monkeypatch.setattr(repo, "_next_sequential_id", lambda: 1)

        with pytest.raises(StoreFailure) as exc_info:
            repo.create(listing_payload(titulo="Casa 2"))

        assert exc_info.value.message == "Error al crear propiedad"
        assert len(repo.list()) == 1


class TestCreate:

    def test_returns_full_record(self, repo, listing_payload):
        listing = repo.create(listing_payload(imagenes=["data:image/jpeg;base64,AAAA"]))
        assert len(listing.storage_id) == 24
        assert listing.titulo == "Casa 1"
        assert listing.tipo == "Venta"
        assert listing.imagenes == ["data:image/jpeg;base64,AAAA"]
        assert listing.created_at is not None
        assert listing.updated_at is not None

    @pytest.mark.parametrize("value", ["", None])
    def test_empty_areas_become_null(self, repo, listing_payload, value):
        listing = repo.create(listing_payload(terrenoM2=value, construccionM2=value))
        assert listing.terreno_m2 is None
        assert listing.construccion_m2 is None

    def test_missing_areas_are_null(self, repo, listing_payload):
        listing = repo.create(listing_payload())
        assert listing.terreno_m2 is None
        assert listing.construccion_m2 is None

    def test_numeric_string_areas_are_parsed(self, repo, listing_payload):
        listing = repo.create(listing_payload(terrenoM2="120", construccionM2="85.5"))
        assert listing.terreno_m2 == 120
        assert listing.construccion_m2 == 85.5

    def test_non_list_images_become_empty(self, repo, listing_payload):
        assert repo.create(listing_payload(imagenes="not-a-list")).imagenes == []

    def test_numeric_price_is_kept_as_text(self, repo, listing_payload):
        assert repo.create(listing_payload(precio=250000)).precio == "250000"

    def test_english_field_names(self, repo):
        listing = repo.create({
            "title": "Local comercial",
            "category": "Transfer",
            "zone": "Norte",
            "price": "$1,200,000",
            "landAreaM2": "300",
            "builtAreaM2": None,
            "description": "Traspaso de negocio",
            "images": [],
        })
        assert listing.tipo == "Traspaso"
        assert listing.terreno_m2 == 300
        assert listing.construccion_m2 is None

    @pytest.mark.parametrize("field", ["titulo", "tipo", "zona", "precio", "descripcion"])
    def test_missing_required_field_fails_without_writing(self, repo, listing_payload, field):
        payload = listing_payload()
        del payload[field]

        with pytest.raises(StoreFailure):
            repo.create(payload)

        assert repo.list() == []

    def test_unknown_category_fails(self, repo, listing_payload):
        with pytest.raises(StoreFailure):
            repo.create(listing_payload(tipo="Renta"))

    def test_unparseable_area_fails(self, repo, listing_payload):
        with pytest.raises(StoreFailure):
            repo.create(listing_payload(terrenoM2="grande"))

    def test_non_scalar_area_fails(self, repo, listing_payload):
        with pytest.raises(StoreFailure):
            repo.create(listing_payload(terrenoM2=[1, 2]))

    @pytest.mark.parametrize("payload", [["titulo"], "Casa", 42])
    def test_non_object_payload_fails(self, repo, payload):
        with pytest.raises(StoreFailure):
            repo.create(payload)
        assert repo.list() == []


class TestList:

    def test_empty(self, repo):
        assert repo.list() == []

    def test_ordered_by_sequential_id_after_updates(self, repo, listing_payload):
        for n in range(1, 4):
            repo.create(listing_payload(titulo=f"Casa {n}"))
        repo.update(SequentialId(1), {"titulo": "Casa 1 renovada"})
        repo.update(SequentialId(3), {"zona": "Sur"})

        assert [item.sequential_id for item in repo.list()] == [1, 2, 3]


class TestUpdate:

    def test_by_sequential_id(self, repo, listing_payload):
        repo.create(listing_payload())
        updated = repo.update(parse_identifier("1"), {"titulo": "X"})
        assert updated.titulo == "X"

    def test_by_storage_id(self, repo, listing_payload):
        created = repo.create(listing_payload())
        updated = repo.update(parse_identifier(created.storage_id), {"precio": "95000"})
        assert updated.sequential_id == 1
        assert updated.precio == "95000"

    def test_absent_fields_are_untouched(self, repo, listing_payload):
        created = repo.create(listing_payload(terrenoM2="200", imagenes=["a", "b"]))
        before = snapshot(created)

        updated = repo.update(SequentialId(1), {"titulo": "X"})

        after = snapshot(updated)
        assert after.pop("titulo") == "X"
        before.pop("titulo")
        assert after == before

    def test_is_idempotent(self, repo, listing_payload):
        repo.create(listing_payload())
        change = {"zona": "Playa", "construccionM2": "150"}

        first = snapshot(repo.update(SequentialId(1), change))
        second = snapshot(repo.update(SequentialId(1), change))

        assert first == second
        assert second["construccion_m2"] == 150

    def test_present_areas_are_normalized(self, repo, listing_payload):
        repo.create(listing_payload(terrenoM2="200", construccionM2="100"))
        updated = repo.update(SequentialId(1), {"terrenoM2": ""})
        assert updated.terreno_m2 is None
        assert updated.construccion_m2 == 100

    def test_bumps_updated_at(self, repo, listing_payload):
        created = repo.create(listing_payload())
        first_updated_at = created.updated_at
        updated = repo.update(SequentialId(1), {"titulo": "Otra"})
        assert updated.updated_at >= first_updated_at

    def test_ids_in_payload_are_ignored(self, repo, listing_payload):
        created = repo.create(listing_payload())
        updated = repo.update(SequentialId(1), {"id": 50, "_id": "f" * 24, "titulo": "X"})
        assert updated.sequential_id == 1
        assert updated.storage_id == created.storage_id

    def test_null_required_field_fails_and_keeps_record(self, repo, listing_payload):
        repo.create(listing_payload())

        with pytest.raises(StoreFailure) as exc_info:
            repo.update(SequentialId(1), {"titulo": None})

        assert exc_info.value.message == "Error al actualizar propiedad"
        assert repo.list()[0].titulo == "Casa 1"

    @pytest.mark.parametrize("token", ["2", "ffffffffffffffffffffffff", "1.5", "Infinity", "99999999999999999999"])
    def test_unknown_identifier_is_not_found(self, repo, listing_payload, token):
        repo.create(listing_payload())
        with pytest.raises(ListingNotFound):
            repo.update(parse_identifier(token), {"titulo": "X"})

    def test_not_found_wins_over_invalid_payload(self, repo):
        with pytest.raises(ListingNotFound):
            repo.update(SequentialId(9), {"titulo": None})


class TestDelete:

    def test_by_sequential_id(self, repo, listing_payload):
        repo.create(listing_payload(titulo="A"))
        repo.create(listing_payload(titulo="B"))

        repo.delete(SequentialId(1))

        assert [item.titulo for item in repo.list()] == ["B"]

    def test_by_storage_id(self, repo, listing_payload):
        created = repo.create(listing_payload())
        repo.delete(StorageId(created.storage_id))
        assert repo.list() == []

    @pytest.mark.parametrize("token", ["1", "abc", "000000000000000000000000", "99999999999999999999"])
    def test_missing_is_not_found(self, repo, token):
        with pytest.raises(ListingNotFound) as exc_info:
            repo.delete(parse_identifier(token))
        assert exc_info.value.status_code == 404

    def test_delete_all(self, repo, listing_payload):
        for _ in range(3):
            repo.create(listing_payload())

        assert repo.delete_all() == 3
        assert repo.list() == []

    def test_delete_all_on_empty_collection(self, repo):
        assert repo.delete_all() == 0


class TestStoreFailures:

    def test_list_failure_is_generic(self, repo, database):
        from vendecasas.storage import Base
        Base.metadata.drop_all(bind=database.engine)

        with pytest.raises(StoreFailure) as exc_info:
            repo.list()

        assert exc_info.value.message == "Error al obtener propiedades"
        assert exc_info.value.status_code == 500
