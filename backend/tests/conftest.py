"""Test fixtures for the herbario API: in-memory SQLite and a row factory."""
from __future__ import annotations

import os
from datetime import date, datetime
from typing import Optional

# Must be set before herbario.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["PACKAGE_SWEEP_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient

from herbario.database import Base, SessionLocal, engine
from herbario.main import app
from herbario.models import (
    Archivo, ClasificacionHerbario, ClassificationState, Conglomerado, Departamento, Especie,
    Familia, Genero, MuestraBotanica, Municipio, Paquete, Region, ThreatCategory,
)


class Factory:
    """Creates committed rows; lookups by name are reused so tests stay short."""

    def __init__(self, db):
        self.db = db
        self._counter = 0

    def _next(self) -> int:
        self._counter += 1
        return self._counter

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def region(self, nombre: str) -> Region:
        existing = self.db.query(Region).filter(Region.nombre == nombre).first()
        return existing or self._save(Region(nombre=nombre))

    def conglomerado(self, departamento: str = "Antioquia", region: Optional[str] = "Región Andina",
                     municipio: str = "Medellín") -> Conglomerado:
        depto = self.db.query(Departamento).filter(Departamento.nombre == departamento).first()
        if not depto:
            id_region = self.region(region).id if region else None
            depto = self._save(Departamento(nombre=departamento, id_region=id_region))
        muni = self._save(Municipio(nombre=municipio, id_departamento=depto.id))
        return self._save(Conglomerado(codigo=f"CONG-{self._next():04d}", id_municipio=muni.id))

    def especie(self, nombre: str = "edulis", genero: str = "Inga", familia: str = "Fabaceae",
                tipo_amenaza: Optional[ThreatCategory] = None) -> Especie:
        fam = self.db.query(Familia).filter(Familia.nombre == familia).first() \
            or self._save(Familia(nombre=familia))
        gen = self.db.query(Genero).filter(Genero.nombre == genero, Genero.id_familia == fam.id).first() \
            or self._save(Genero(nombre=genero, id_familia=fam.id))
        return self._save(Especie(nombre=nombre, id_genero=gen.id, tipo_amenaza=tipo_amenaza))

    def paquete(self, conglomerado: Optional[Conglomerado] = None, estado=None) -> Paquete:
        paquete = Paquete(
            num_paquete=f"PAQ-{self._next():03d}",
            fecha_recibido_herbario=date(2025, 3, 1),
            id_conglomerado=conglomerado.id if conglomerado else None,
        )
        if estado is not None:
            paquete.estado = estado
        return self._save(paquete)

    def muestra(self, paquete: Optional[Paquete] = None, **fields) -> MuestraBotanica:
        n = self._next()
        fields.setdefault("num_coleccion", f"COL-{n}")
        fields.setdefault("num_individuo", str(n))
        fields.setdefault("colector", "A. Gentry")
        return self._save(MuestraBotanica(id_paquete=paquete.id if paquete else None, **fields))

    def clasificacion(self, muestra: MuestraBotanica, estado: ClassificationState,
                      especie: Optional[Especie] = None, created_at: Optional[datetime] = None,
                      **fields) -> ClasificacionHerbario:
        clasificacion = ClasificacionHerbario(
            id_muestra=muestra.id,
            estado=estado,
            id_especie=especie.id if especie else None,
            **fields,
        )
        if created_at is not None:
            clasificacion.created_at = created_at
        return self._save(clasificacion)

    def archivo(self, name: str = "foto.jpg") -> Archivo:
        return self._save(Archivo(bucket_id="herbario", path=f"clasificaciones/{name}", name=name,
                                  mime="image/jpeg", size=2048))

    def specimen(self, departamento: str, region: Optional[str], especie: Especie,
                 estado: ClassificationState = ClassificationState.COMPLETADO) -> MuestraBotanica:
        """A sample in its own package located in `departamento`, classified as `especie`."""
        paquete = self.paquete(self.conglomerado(departamento=departamento, region=region))
        muestra = self.muestra(paquete)
        self.clasificacion(muestra, estado, especie=especie)
        return muestra


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def factory(db) -> Factory:
    return Factory(db)


@pytest.fixture()
def client(db) -> TestClient:
    # No context manager: the lifespan (scheduler) is not started in tests
    return TestClient(app)
