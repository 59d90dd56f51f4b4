"""All SQLAlchemy models – re-exported for Alembic and app use."""

from herbario.models.geography import Region, Departamento, Municipio, Conglomerado
from herbario.models.taxonomy import Familia, Genero, Especie, ThreatCategory
from herbario.models.herbarium import (
    Paquete, MuestraBotanica, ClasificacionHerbario, Archivo,
    PackageState, ClassificationState, ReproductiveState,
)

__all__ = [
    "Region", "Departamento", "Municipio", "Conglomerado",
    "Familia", "Genero", "Especie", "ThreatCategory",
    "Paquete", "MuestraBotanica", "ClasificacionHerbario", "Archivo",
    "PackageState", "ClassificationState", "ReproductiveState",
]
