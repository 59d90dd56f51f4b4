"""Package state derivation: pure rules and database recompute."""
from datetime import datetime

import pytest

from herbario.models import ClassificationState, PackageState, Paquete
from herbario.services.package_state import (
    derive_package_state, fetch_sample_states, refresh_all_package_states, refresh_package_state,
    refresh_package_state_for_sample, refresh_package_state_in_background, tally_classification_states,
)

C = ClassificationState


@pytest.mark.parametrize("states, expected", [
    ([], PackageState.RECIBIDO),
    ([None, None], PackageState.RECIBIDO),
    ([C.COMPLETADO, C.FIRMADO, C.CLASIFICADO], PackageState.COMPLETO),
    ([C.COMPLETADO, C.COMPLETADO, None], PackageState.RECIBIDO),
    ([C.COMPLETADO, C.BORRADOR, None], PackageState.EN_PROCESO),
    ([C.EN_ANALISIS], PackageState.EN_PROCESO),
    ([C.FIRMADO, C.EN_ANALISIS], PackageState.EN_PROCESO),
])
def test_derive_package_state(states, expected):
    assert derive_package_state(states) == expected


def test_derive_accepts_raw_values():
    assert derive_package_state(["completado", "firmado"]) == PackageState.COMPLETO


def test_tally_counts_unclassified_samples():
    tally = tally_classification_states([C.COMPLETADO, C.BORRADOR, None, None])

    assert tally.total == 4
    assert tally.completed == 1
    assert tally.in_progress == 1
    assert tally.unclassified == 2


def test_two_completed_and_one_unclassified_stays_received(db, factory):
    paquete = factory.paquete()
    for estado in (C.COMPLETADO, C.COMPLETADO):
        factory.clasificacion(factory.muestra(paquete), estado)
    factory.muestra(paquete)

    result = refresh_package_state(db, paquete.id)

    assert result.state == PackageState.RECIBIDO
    assert result.tally.total == 3
    assert result.tally.unclassified == 1


def test_all_samples_completed_marks_package_complete(db, factory):
    paquete = factory.paquete()
    factory.clasificacion(factory.muestra(paquete), C.COMPLETADO)
    factory.clasificacion(factory.muestra(paquete), C.FIRMADO)

    result = refresh_package_state(db, paquete.id)

    assert result.changed
    assert result.previous_state == PackageState.RECIBIDO
    db.expire_all()
    assert db.get(Paquete, paquete.id).estado == PackageState.COMPLETO


def test_empty_package_is_never_complete(db, factory):
    paquete = factory.paquete(estado=PackageState.COMPLETO)

    result = refresh_package_state(db, paquete.id)

    assert result.state == PackageState.RECIBIDO
    assert result.tally.total == 0


def test_recompute_is_idempotent(db, factory):
    paquete = factory.paquete()
    factory.clasificacion(factory.muestra(paquete), C.BORRADOR)

    first = refresh_package_state(db, paquete.id)
    second = refresh_package_state(db, paquete.id)

    assert first.changed
    assert first.state == PackageState.EN_PROCESO
    assert not second.changed
    assert second.state == PackageState.EN_PROCESO


def test_most_recent_classification_wins(db, factory):
    paquete = factory.paquete()
    muestra = factory.muestra(paquete)
    factory.clasificacion(muestra, C.BORRADOR, created_at=datetime(2025, 1, 1, 10, 0))
    factory.clasificacion(muestra, C.COMPLETADO, created_at=datetime(2025, 1, 2, 10, 0))

    assert fetch_sample_states(db, paquete.id) == [C.COMPLETADO]
    assert refresh_package_state(db, paquete.id).state == PackageState.COMPLETO


def test_unknown_package_returns_none(db):
    assert refresh_package_state(db, 999) is None


def test_sample_without_package_is_a_noop(db, factory):
    muestra = factory.muestra()
    factory.clasificacion(muestra, C.COMPLETADO)

    assert refresh_package_state_for_sample(db, muestra.id) is None
    assert refresh_package_state_for_sample(db, 12345) is None


def test_background_refresh_updates_owning_package(db, factory):
    paquete = factory.paquete()
    muestra = factory.muestra(paquete)
    factory.clasificacion(muestra, C.FIRMADO)

    refresh_package_state_in_background(muestra.id)

    db.expire_all()
    assert db.get(Paquete, paquete.id).estado == PackageState.COMPLETO


def test_background_refresh_logs_and_swallows_errors(db, factory, monkeypatch, caplog):
    def boom(db, id_muestra):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr("herbario.services.package_state.refresh_package_state_for_sample", boom)

    refresh_package_state_in_background(1)

    assert "database unavailable" in caplog.text


def test_refresh_all_package_states(db, factory):
    completo = factory.paquete()
    factory.clasificacion(factory.muestra(completo), C.COMPLETADO)
    en_proceso = factory.paquete()
    factory.clasificacion(factory.muestra(en_proceso), C.EN_ANALISIS)
    vacio = factory.paquete()

    results = refresh_all_package_states(db)

    assert results == {
        completo.id: "completo",
        en_proceso.id: "en_proceso",
        vacio.id: "recibido",
    }
