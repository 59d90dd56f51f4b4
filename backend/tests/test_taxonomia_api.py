"""Taxonomy selectors and search."""
from herbario.models import ThreatCategory


def test_cascading_selectors(client, db, factory):
    inga = factory.especie("edulis", genero="Inga", familia="Fabaceae", tipo_amenaza=ThreatCategory.LC)
    factory.especie("spectabilis", genero="Inga", familia="Fabaceae")
    factory.especie("calophylla", genero="Ocotea", familia="Lauraceae")

    familias = client.get("/taxonomia/familias").json()
    assert [f["nombre"] for f in familias] == ["Fabaceae", "Lauraceae"]

    generos = client.get(f"/taxonomia/generos/{familias[0]['id']}").json()
    assert [g["nombre"] for g in generos] == ["Inga"]

    especies = client.get(f"/taxonomia/especies/{inga.id_genero}").json()
    assert [e["nombre"] for e in especies] == ["edulis", "spectabilis"]
    assert especies[0]["tipo_amenaza"] == "LC"


def test_selectors_unknown_parent(client, db):
    assert client.get("/taxonomia/generos/99").status_code == 404
    assert client.get("/taxonomia/especies/99").status_code == 404


def test_search_species_is_case_insensitive(client, db, factory):
    factory.especie("quindiuense", genero="Ceroxylon", familia="Arecaceae", tipo_amenaza=ThreatCategory.EN)
    factory.especie("edulis", genero="Inga", familia="Fabaceae")

    resp = client.get("/taxonomia/buscar", params={"termino": "QUIND"})

    assert resp.status_code == 200
    assert resp.json() == [{
        "id": resp.json()[0]["id"],
        "nombre": "quindiuense",
        "nombre_comun": None,
        "tipo_amenaza": "EN",
        "genero": "Ceroxylon",
        "familia": "Arecaceae",
    }]


def test_search_by_rank_is_limited(client, db, factory):
    for i in range(12):
        factory.especie(f"sp{i}", genero=f"Genus{i:02d}", familia="Melastomataceae")

    generos = client.get("/taxonomia/buscar", params={"termino": "genus", "tipo": "genero"}).json()
    familias = client.get("/taxonomia/buscar", params={"termino": "melas", "tipo": "familia"}).json()

    assert len(generos) == 10
    assert generos[0]["familia"] == "Melastomataceae"
    assert [f["nombre"] for f in familias] == ["Melastomataceae"]


def test_search_requires_term(client, db):
    assert client.get("/taxonomia/buscar").status_code == 422
