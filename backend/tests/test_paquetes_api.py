"""Package endpoints and the consistency tooling built on the same deriver."""
from herbario.models import ClassificationState, PackageState, Paquete
from herbario.scripts import validate_package_states
from herbario.services import scheduler

C = ClassificationState


def test_list_paquetes_filtered_by_estado(client, db, factory):
    recibido = factory.paquete()
    completo = factory.paquete(estado=PackageState.COMPLETO)

    assert [p["id"] for p in client.get("/paquetes").json()] == [recibido.id, completo.id]
    resp = client.get("/paquetes", params={"estado": "completo"})
    assert [p["id"] for p in resp.json()] == [completo.id]
    assert client.get("/paquetes", params={"estado": "perdido"}).status_code == 422


def test_get_paquete_with_tally(client, db, factory):
    paquete = factory.paquete()
    factory.clasificacion(factory.muestra(paquete), C.COMPLETADO)
    factory.clasificacion(factory.muestra(paquete), C.BORRADOR)
    factory.muestra(paquete)

    resp = client.get(f"/paquetes/{paquete.id}")

    assert resp.status_code == 200
    body = resp.json()
    assert body["estado"] == "recibido"
    assert body["estado_derivado"] == "en_proceso"
    assert body["resumen"] == {"total_muestras": 3, "completadas": 1, "en_proceso": 1, "sin_clasificar": 1}
    assert client.get("/paquetes/999").status_code == 404


def test_recalcular_estado(client, db, factory):
    paquete = factory.paquete()
    factory.clasificacion(factory.muestra(paquete), C.FIRMADO)

    first = client.post(f"/paquetes/{paquete.id}/estado/recalcular").json()
    second = client.post(f"/paquetes/{paquete.id}/estado/recalcular").json()

    assert first["estado_anterior"] == "recibido"
    assert first["estado"] == "completo"
    assert first["actualizado"] is True
    assert second["actualizado"] is False
    assert client.post("/paquetes/999/estado/recalcular").status_code == 404


def test_admin_sweep(client, db, factory):
    paquete = factory.paquete()
    factory.clasificacion(factory.muestra(paquete), C.EN_ANALISIS)
    vacio = factory.paquete()

    resp = client.post("/admin/paquetes/recalcular")

    assert resp.status_code == 200
    assert resp.json() == {
        "status": "ok",
        "paquetes_procesados": 2,
        "errores": 0,
        "detalles": {str(paquete.id): "en_proceso", str(vacio.id): "recibido"},
    }


def test_scheduled_sweep_job(db, factory):
    paquete = factory.paquete()
    factory.clasificacion(factory.muestra(paquete), C.COMPLETADO)

    scheduler.run_package_sweep_job()

    db.expire_all()
    assert db.get(Paquete, paquete.id).estado == PackageState.COMPLETO


def test_scheduler_not_started_when_disabled():
    scheduler.start_scheduler()
    assert not scheduler.scheduler.running


def test_validate_script_detects_and_fixes_drift(db, factory, capsys):
    paquete = factory.paquete()
    factory.clasificacion(factory.muestra(paquete), C.COMPLETADO)

    assert validate_package_states.main([]) == 1
    assert "derived 'completo'" in capsys.readouterr().out

    assert validate_package_states.main(["--fix"]) == 0
    assert validate_package_states.main([]) == 0


def test_health(client, db):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json()["status"] == "OK"
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
