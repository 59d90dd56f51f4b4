"""
Herbarium Statistics

Aggregations over every specimen whose classification reached a terminal
state (completado / firmado) with a species assigned:

- per department: specimen count, distinct species, integer percentage (top N)
- per region: fixed list of the five natural regions, always present
- per threat category: count and one-decimal percentage
- per taxon (family or genus) restricted to one department or region

Rows are fetched once with a single join and grouped in memory.
"""
import enum
import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional, Set, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from herbario.models import (
    ClasificacionHerbario, ClassificationState, Conglomerado, Departamento, Especie,
    Familia, Genero, MuestraBotanica, Municipio, Paquete, Region,
)

logger = logging.getLogger(__name__)

STATISTICS_STATES = (ClassificationState.COMPLETADO, ClassificationState.FIRMADO)

# Output order is fixed; regions with no data are reported with zeros.
REGIONS = ["Andina", "Caribe", "Pacífica", "Orinoquía", "Amazonía"]

NOT_THREATENED = "No Amenazado"
DEFAULT_TOP_N = 10

_REGION_PREFIX = re.compile(r"^Región\s+", re.IGNORECASE)


class LocationType(str, enum.Enum):
    DEPARTAMENTO = "departamento"
    REGION = "region"


class TaxonLevel(str, enum.Enum):
    FAMILIA = "familia"
    GENERO = "genero"


@dataclass
class ClassifiedSpecimen:
    """One terminal classification joined with its taxonomy and geography."""
    id_clasificacion: int
    id_muestra: int
    id_especie: int
    especie: Optional[str] = None
    genero: Optional[str] = None
    familia: Optional[str] = None
    tipo_amenaza: Optional[str] = None
    departamento: Optional[str] = None
    region: Optional[str] = None


@dataclass
class _Bucket:
    samples: Set[int] = field(default_factory=set)
    species: Set[int] = field(default_factory=set)
    families: Set[str] = field(default_factory=set)
    departments: Set[str] = field(default_factory=set)


def normalize_region_name(nombre: Optional[str]) -> Optional[str]:
    """'Región Andina' and 'Andina' both normalize to 'Andina'."""
    if not nombre:
        return None
    return _REGION_PREFIX.sub("", nombre.strip()).strip()


def round_percentage(part: int, whole: int, digits: int = 0) -> Union[int, float]:
    """
    part/whole as a percentage, rounded half-up to `digits` decimals.

    Returns an int when digits == 0. A zero denominator yields 0.
    """
    if whole <= 0:
        return 0 if digits == 0 else 0.0
    exact = Decimal(part) * 100 / Decimal(whole)
    rounded = exact.quantize(Decimal(1).scaleb(-digits), rounding=ROUND_HALF_UP)
    return int(rounded) if digits == 0 else float(rounded)


def fetch_classified_specimens(
    db: Session,
    states: Iterable[ClassificationState] = STATISTICS_STATES,
) -> List[ClassifiedSpecimen]:
    """Load terminal classifications with a species, joined to taxonomy and geography."""
    stmt = (
        select(
            ClasificacionHerbario.id,
            ClasificacionHerbario.id_muestra,
            Especie.id,
            Especie.nombre,
            Especie.tipo_amenaza,
            Genero.nombre,
            Familia.nombre,
            Departamento.nombre,
            Region.nombre,
        )
        .join(Especie, Especie.id == ClasificacionHerbario.id_especie)
        .join(MuestraBotanica, MuestraBotanica.id == ClasificacionHerbario.id_muestra)
        .outerjoin(Genero, Genero.id == Especie.id_genero)
        .outerjoin(Familia, Familia.id == Genero.id_familia)
        .outerjoin(Paquete, Paquete.id == MuestraBotanica.id_paquete)
        .outerjoin(Conglomerado, Conglomerado.id == Paquete.id_conglomerado)
        .outerjoin(Municipio, Municipio.id == Conglomerado.id_municipio)
        .outerjoin(Departamento, Departamento.id == Municipio.id_departamento)
        .outerjoin(Region, Region.id == Departamento.id_region)
        .where(ClasificacionHerbario.estado.in_(list(states)))
        .where(ClasificacionHerbario.id_especie.is_not(None))
        .order_by(ClasificacionHerbario.id)
    )

    return [
        ClassifiedSpecimen(
            id_clasificacion=row[0],
            id_muestra=row[1],
            id_especie=row[2],
            especie=row[3],
            tipo_amenaza=getattr(row[4], "value", row[4]),
            genero=row[5],
            familia=row[6],
            departamento=row[7],
            region=row[8],
        )
        for row in db.execute(stmt).all()
    ]


def _department_rows(specimens: List[ClassifiedSpecimen], total: int, top_n: int) -> List[dict]:
    buckets: Dict[str, _Bucket] = {}
    for s in specimens:
        if not s.departamento:
            continue
        bucket = buckets.setdefault(s.departamento, _Bucket())
        bucket.samples.add(s.id_muestra)
        bucket.species.add(s.id_especie)

    rows = [
        {
            "name": name,
            "specimens": len(b.samples),
            "species": len(b.species),
            "percentage": round_percentage(len(b.samples), total),
        }
        for name, b in buckets.items()
    ]
    rows.sort(key=lambda r: r["specimens"], reverse=True)
    return rows[:top_n]


def _region_rows(specimens: List[ClassifiedSpecimen], total: int) -> List[dict]:
    buckets: Dict[str, _Bucket] = {}
    for s in specimens:
        region = normalize_region_name(s.region)
        if not region:
            continue
        bucket = buckets.setdefault(region, _Bucket())
        bucket.samples.add(s.id_muestra)
        bucket.species.add(s.id_especie)
        if s.familia:
            bucket.families.add(s.familia)
        if s.departamento:
            bucket.departments.add(s.departamento)

    rows = []
    for name in REGIONS:
        b = buckets.get(name, _Bucket())
        rows.append({
            "name": name,
            "departments": len(b.departments),
            "specimens": len(b.samples),
            "species": len(b.species),
            "families": len(b.families),
            "percentage": round_percentage(len(b.samples), total),
        })
    return rows


def _threat_rows(specimens: List[ClassifiedSpecimen]) -> List[dict]:
    counts = Counter(s.tipo_amenaza or NOT_THREATENED for s in specimens)
    total = len(specimens)
    rows = [
        {
            "categoria": categoria,
            "count": count,
            "porcentaje": round_percentage(count, total, digits=1),
        }
        for categoria, count in counts.items()
    ]
    rows.sort(key=lambda r: r["count"], reverse=True)
    return rows


def compute_statistics(specimens: List[ClassifiedSpecimen], top_n: int = DEFAULT_TOP_N) -> dict:
    """
    Build the statistics dashboard payload.

    Department and region percentages are integers over the number of
    distinct classified samples; threat percentages keep one decimal and are
    taken over the number of classifications.
    """
    total_especimenes = len({s.id_muestra for s in specimens})

    return {
        "departamentos": _department_rows(specimens, total_especimenes, top_n),
        "regiones": _region_rows(specimens, total_especimenes),
        "especies_amenazadas": _threat_rows(specimens),
        "total_especimenes": total_especimenes,
        "total_clasificaciones": len(specimens),
    }


def _matches_location(specimen: ClassifiedSpecimen, ubicacion: str, tipo: LocationType) -> bool:
    if tipo == LocationType.DEPARTAMENTO:
        return specimen.departamento == ubicacion
    region = normalize_region_name(specimen.region)
    return region is not None and region == normalize_region_name(ubicacion)


def rank_taxa_by_location(
    specimens: List[ClassifiedSpecimen],
    ubicacion: str,
    tipo: Union[LocationType, str],
    nivel: Union[TaxonLevel, str],
    top_n: int = DEFAULT_TOP_N,
) -> List[dict]:
    """
    Top taxa (family or genus) by specimen count within one department or region.

    Specimens whose taxon cannot be resolved at the requested level are left
    out of both the counts and the percentage denominator.
    """
    tipo = LocationType(tipo)
    nivel = TaxonLevel(nivel)

    names = []
    for s in specimens:
        if not _matches_location(s, ubicacion, tipo):
            continue
        name = s.familia if nivel == TaxonLevel.FAMILIA else s.genero
        if name:
            names.append(name)

    total = len(names)
    rows = [
        {"name": name, "count": count, "percentage": round_percentage(count, total)}
        for name, count in Counter(names).items()
    ]
    rows.sort(key=lambda r: r["count"], reverse=True)

    logger.debug(f"{len(rows)} {nivel.value} taxa in {tipo.value} '{ubicacion}' over {total} specimens")
    return rows[:top_n]
