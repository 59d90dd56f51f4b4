"""Reference data seeding."""
from herbario.models import Conglomerado, Departamento, Especie, Region
from herbario.seed.seed_data import DEPARTMENTS_BY_REGION, seed_database
from herbario.services.statistics import REGIONS


def test_seed_is_idempotent(db):
    seed_database(db)
    seed_database(db)

    assert sorted(r.nombre for r in db.query(Region).all()) == sorted(REGIONS)
    expected_departments = sum(len(d) for d in DEPARTMENTS_BY_REGION.values())
    assert db.query(Departamento).count() == expected_departments
    assert db.query(Conglomerado).count() == expected_departments
    assert db.query(Especie).filter(Especie.tipo_amenaza.is_(None)).count() == 2


def test_seeded_departments_belong_to_their_region(db):
    seed_database(db)

    choco = db.query(Departamento).filter(Departamento.nombre == "Chocó").one()
    assert choco.region.nombre == "Pacífica"
