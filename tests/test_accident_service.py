import pytest

from tetela_radar.errors import StorageError, ValidationError
from tetela_radar.services.accident_service import AccidentService
from tetela_radar.services.seed_data import SEED_ACCIDENTS

FLOOD = {
    "nombre": "Test",
    "tipo": "Flood",
    "descripcion": "x",
    "coordenadas": [-97.8, 19.8],
    "nivel_riesgo": "medium",
}


def test_create_assigns_id_and_created_at(service):
    saved = service.create(FLOOD)
    assert saved["id"]
    assert saved["createdAt"]
    assert saved["nombre"] == "Test"
    assert "id" not in FLOOD


def test_create_then_list_grows_by_one(service):
    before = len(service.list())
    saved = service.create(FLOOD)
    items = service.list()
    assert len(items) == before + 1
    assert items[-1] == saved


def test_create_keeps_existing_id(service):
    saved = service.create(dict(FLOOD, id="custom-7"))
    assert saved["id"] == "custom-7"


def test_timestamp_id_policy(service, monkeypatch):
    monkeypatch.setattr("tetela_radar.services.accident_service.time.time", lambda: 1700000000.5)
    assert service.create(FLOOD)["id"] == 1700000000500


def test_random_id_policy(store):
    svc = AccidentService(store, id_policy="random")
    for _ in range(20):
        assert 1000 <= svc.create(FLOOD)["id"] <= 9999


def test_invalid_configuration(store):
    with pytest.raises(ValueError):
        AccidentService(store, id_policy="uuid")
    with pytest.raises(ValueError):
        AccidentService(store, restore_target="backup")


def test_missing_fields_accepted_by_default(service):
    saved = service.create({"nombre": "Sin descripción", "tipo": "Otro"})
    assert "descripcion" not in saved
    assert service.list()[-1]["nombre"] == "Sin descripción"


def test_required_fields_enforced(store):
    svc = AccidentService(store, require_fields=True)
    with pytest.raises(ValidationError) as exc:
        svc.create({"nombre": "Test", "tipo": " "})
    assert exc.value.missing == ["tipo", "descripcion"]
    assert svc.list() == []


def test_legacy_image_shapes_become_image_url(service):
    saved = service.create(dict(FLOOD, imagenes=["https://img.example/a.jpg"]))
    assert saved["imageUrl"] == "https://img.example/a.jpg"
    assert "imagenes" not in saved

    saved = service.create(dict(FLOOD, image="data:image/gif;base64,R0lGOD"))
    assert saved["imageUrl"].startswith("data:image/gif")
    assert "image" not in saved


def test_uploaded_image_overrides_inline_one(service):
    saved = service.create(dict(FLOOD, image="images/old.png"),
                           image_url="https://res.example/new.png", image_public_id="tetela/new")
    assert saved["imageUrl"] == "https://res.example/new.png"
    assert saved["imagePublicId"] == "tetela/new"


def test_restore_seed(service):
    service.create(FLOOD)
    data = service.restore_defaults()
    assert data == SEED_ACCIDENTS
    assert service.list() == SEED_ACCIDENTS
    # returned data is a copy
    data[0]["nombre"] = "changed"
    assert SEED_ACCIDENTS[0]["nombre"] == "Huracán Patricia"


def test_restore_empty(store):
    svc = AccidentService(store, restore_target="empty")
    svc.create(FLOOD)
    assert svc.restore_defaults() == []
    assert svc.list() == []


def test_list_is_idempotent(service):
    service.create(FLOOD)
    assert service.list() == service.list()


def test_search_by_risk_and_text(service):
    service.restore_defaults()
    service.create(dict(FLOOD, nivel_riesgo="Alto", nombre="Poste caído"))
    assert [r["id"] for r in service.search(risk="high")][0] == 1
    assert len(service.search(risk="alto")) == 2
    assert [r["nombre"] for r in service.search(text="poste")] == ["Poste caído"]
    assert len(service.search(text="tetela")) == 2


def test_delete(service):
    service.restore_defaults()
    assert service.delete("2") is True
    assert service.delete("2") is False
    assert [r["id"] for r in service.list()] == [1]


def test_storage_failure_propagates(service, monkeypatch):
    def boom(records):
        raise StorageError(StorageError.WRITE_FAILED, "disk full")
    monkeypatch.setattr(service.store, "save_all", boom)
    with pytest.raises(StorageError) as exc:
        service.create(FLOOD)
    assert exc.value.reason == StorageError.WRITE_FAILED


def test_unsynchronized_creates_can_lose_a_record(store):
    """Two writers that load the same snapshot: the later save wins."""
    first = AccidentService(store)
    snapshot = store.load_all()

    first.create(dict(FLOOD, nombre="A"))
    # second writer appends to the stale snapshot it loaded earlier
    store.save_all(snapshot + [dict(FLOOD, nombre="B", id=2)])

    names = [r["nombre"] for r in store.load_all()]
    assert names == ["B"]


def test_list_ordered_skips_undated_records(service):
    service.restore_defaults()
    saved = service.create(FLOOD)
    assert service.list(order="newest") == [saved]
    with pytest.raises(ValueError):
        service.list(order="sideways")
