"""Sample listings, sample updates and file lookup."""
from datetime import datetime

from herbario.models import ClassificationState, MuestraBotanica, PackageState, Paquete

C = ClassificationState


def test_pendientes_lists_unclassified_packaged_samples(client, db, factory):
    conglomerado = factory.conglomerado(departamento="Meta", region="Región Orinoquía", municipio="Villavicencio")
    paquete = factory.paquete(conglomerado)
    pendiente = factory.muestra(paquete)
    clasificada = factory.muestra(paquete)
    factory.clasificacion(clasificada, C.BORRADOR)
    factory.muestra()  # not in a package

    resp = client.get("/muestras/pendientes")

    assert resp.status_code == 200
    body = resp.json()
    assert [m["id"] for m in body] == [pendiente.id]
    assert body[0]["num_paquete"] == paquete.num_paquete
    assert body[0]["conglomerado"] == {
        "codigo": conglomerado.codigo,
        "municipio": "Villavicencio",
        "departamento": "Meta",
    }


def test_pendientes_filters_by_conglomerado(client, db, factory):
    meta = factory.conglomerado(departamento="Meta", region="Orinoquía")
    choco = factory.conglomerado(departamento="Chocó", region="Pacífica")
    en_meta = factory.muestra(factory.paquete(meta))
    factory.muestra(factory.paquete(choco))

    resp = client.get("/muestras/pendientes", params={"conglomerado": meta.codigo})

    assert [m["id"] for m in resp.json()] == [en_meta.id]


def test_cola_laboratorio(client, db, factory):
    meta = factory.conglomerado(departamento="Meta", region="Orinoquía", municipio="Villavicencio")
    paquete = factory.paquete(meta)
    muestra = factory.muestra(paquete, familia_identificada="Fabaceae", genero_identificado="Inga",
                              observaciones="Hojas compuestas, flores blancas")
    factory.muestra(factory.paquete(factory.conglomerado(departamento="Chocó", region="Pacífica")))

    resp = client.get("/muestras/pendientes/cola", params={"conglomerado": meta.codigo})

    assert resp.status_code == 200
    body = resp.json()
    assert body["filtros_aplicados"] == {"conglomerado": meta.codigo}
    [grupo] = body["muestras_pendientes"]
    assert grupo["conglomerado"]["codigo"] == meta.codigo
    assert grupo["conglomerado"]["municipio"] == "Villavicencio"
    assert grupo["estadisticas"] == {"total": 1, "alta_prioridad": 1, "con_identificacion_previa": 1}
    [item] = grupo["muestras"]
    assert item["id"] == muestra.id
    assert item["num_paquete"] == paquete.num_paquete
    assert item["conglomerado"]["departamento"] == "Meta"
    assert item["prioridad"] == 70
    assert item["dias_desde_recepcion"] > 30
    assert item["nivel_dificultad"] == "Fácil"
    assert body["estadisticas"]["total_muestras"] == 1
    assert body["estadisticas"]["conglomerados_activos"] == 1


def test_cola_laboratorio_empty(client, db):
    body = client.get("/muestras/pendientes/cola").json()

    assert body["muestras_pendientes"] == []
    assert body["filtros_aplicados"] == {"conglomerado": None}
    assert body["estadisticas"]["distribucion_dificultad"] == {"Fácil": 0, "Moderada": 0, "Difícil": 0}


def test_muestras_por_estado(client, db, factory):
    conglomerado = factory.conglomerado(departamento="Cauca", region="Pacífica", municipio="Popayán")
    paquete = factory.paquete(conglomerado)
    especie = factory.especie("spectabilis", genero="Inga", familia="Fabaceae")
    older = factory.clasificacion(factory.muestra(paquete), C.FIRMADO, especie=especie,
                                  created_at=datetime(2025, 1, 1))
    newer = factory.clasificacion(factory.muestra(paquete), C.FIRMADO, created_at=datetime(2025, 2, 1))
    factory.clasificacion(factory.muestra(paquete), C.BORRADOR)

    resp = client.get("/muestras/estado/firmado")

    assert resp.status_code == 200
    body = resp.json()
    assert [m["id_clasificacion"] for m in body] == [newer.id, older.id]
    assert body[0]["especie_nombre"] == "No identificada"
    assert body[0]["familia"] == "--"
    assert body[1]["especie_nombre"] == "spectabilis"
    assert body[1]["genero"] == "Inga"
    assert body[1]["nombre_conglomerado"] == f"{conglomerado.codigo} - Popayán, Cauca"


def test_muestras_por_estado_invalid(client, db):
    resp = client.get("/muestras/estado/aprobado")

    assert resp.status_code == 400
    assert resp.json()["detail"] == "Estado inválido"


def test_muestras_clasificadas(client, db, factory):
    conglomerado = factory.conglomerado(departamento="Quindío", region="Andina", municipio="Salento")
    paquete = factory.paquete(conglomerado)
    palma = factory.especie("quindiuense", genero="Ceroxylon", familia="Arecaceae")
    muestra = factory.muestra(paquete, num_individuo="7")
    clasificacion = factory.clasificacion(muestra, C.CLASIFICADO, especie=palma)
    factory.clasificacion(factory.muestra(paquete), C.COMPLETADO)  # no species
    factory.clasificacion(factory.muestra(paquete), C.EN_ANALISIS, especie=palma)

    body = client.get("/muestras/clasificadas").json()

    assert len(body) == 1
    item = body[0]
    assert item["id"] == muestra.id
    assert item["id_clasificacion"] == clasificacion.id
    assert item["codigo"] == f"{paquete.num_paquete}-7"
    assert item["nombre_cientifico"] == "Ceroxylon quindiuense"
    assert item["ubicacion"] == "Quindío, Salento"
    assert item["conglomerado"] == conglomerado.codigo


def test_update_muestra(client, db, factory):
    muestra = factory.muestra(observaciones=None)

    resp = client.put(f"/muestras/{muestra.id}", json={"observaciones": "Hojas coriáceas"})

    assert resp.status_code == 200
    assert resp.json()["observaciones"] == "Hojas coriáceas"
    assert client.put("/muestras/999", json={"colector": "X"}).status_code == 404


def test_moving_sample_recomputes_both_packages(client, db, factory):
    origen = factory.paquete()
    destino = factory.paquete()
    muestra = factory.muestra(origen)
    factory.clasificacion(muestra, C.EN_ANALISIS)
    factory.clasificacion(factory.muestra(destino), C.COMPLETADO)

    client.post(f"/paquetes/{origen.id}/estado/recalcular")
    client.post(f"/paquetes/{destino.id}/estado/recalcular")

    resp = client.put(f"/muestras/{muestra.id}", json={"id_paquete": destino.id})

    assert resp.status_code == 200
    db.expire_all()
    assert db.get(Paquete, origen.id).estado == PackageState.RECIBIDO
    assert db.get(Paquete, destino.id).estado == PackageState.EN_PROCESO


def test_moving_sample_survives_failed_package_recompute(client, db, factory, monkeypatch):
    def boom(db, id_paquete):
        raise RuntimeError("lost connection")

    monkeypatch.setattr("herbario.routers.muestras.refresh_package_state", boom)
    origen = factory.paquete()
    destino = factory.paquete()
    muestra = factory.muestra(origen)

    resp = client.put(f"/muestras/{muestra.id}", json={"id_paquete": destino.id})

    assert resp.status_code == 200
    assert resp.json()["id_paquete"] == destino.id
    db.expire_all()
    assert db.get(MuestraBotanica, muestra.id).id_paquete == destino.id


def test_update_muestra_field_identification(client, db, factory):
    muestra = factory.muestra(factory.paquete())

    resp = client.put(f"/muestras/{muestra.id}", json={"familia_identificada": "Fabaceae", "genero_identificado": "  "})

    assert resp.status_code == 200
    assert resp.json()["familia_identificada"] == "Fabaceae"
    assert resp.json()["genero_identificado"] is None


def test_get_archivo(client, db, factory):
    archivo = factory.archivo("flor.jpg")

    resp = client.get(f"/archivos/{archivo.id}")

    assert resp.status_code == 200
    assert resp.json()["path"] == "clasificaciones/flor.jpg"
    assert client.get("/archivos/404").status_code == 404
