"""
Lab Classification Queue

Pending samples (assigned to a package, never classified) ranked for the lab:

- priority:   +50 received more than 30 days ago, +20 already identified in the
              field, +30 package already in progress, -10 without observations
- difficulty: points from missing field identification and short observations,
              bucketed into Fácil / Moderada / Difícil
- grouping:   by conglomerate, groups ordered by their average priority and
              samples by their own priority
"""
import enum
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import Query, Session, joinedload

from herbario.models import Conglomerado, MuestraBotanica, Municipio, Paquete, PackageState

logger = logging.getLogger(__name__)

STALE_AFTER_DAYS = 30
HIGH_PRIORITY_THRESHOLD = 40
NO_CONGLOMERATE = "Sin conglomerado"


class Difficulty(str, enum.Enum):
    FACIL = "Fácil"
    MODERADA = "Moderada"
    DIFICIL = "Difícil"


@dataclass
class QueuedSample:
    muestra: MuestraBotanica
    prioridad: int
    dias_desde_recepcion: int
    nivel_dificultad: Difficulty


@dataclass
class ConglomerateGroup:
    codigo: str
    municipio: Optional[str] = None
    ubicacion: Optional[str] = None
    muestras: List[QueuedSample] = field(default_factory=list)

    @property
    def prioridad_promedio(self) -> int:
        if not self.muestras:
            return 0
        return _round_half_up(sum(m.prioridad for m in self.muestras) / len(self.muestras))

    @property
    def alta_prioridad(self) -> int:
        return sum(1 for m in self.muestras if m.prioridad > HIGH_PRIORITY_THRESHOLD)

    @property
    def con_identificacion_previa(self) -> int:
        return sum(1 for m in self.muestras if m.muestra.familia_identificada)


def _round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _has_text(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def pending_samples_query(db: Session, conglomerado: Optional[str] = None) -> Query:
    """Samples with a package and no classification, location eagerly loaded."""
    query = db.query(MuestraBotanica).options(
        joinedload(MuestraBotanica.paquete)
        .joinedload(Paquete.conglomerado)
        .joinedload(Conglomerado.municipio)
        .joinedload(Municipio.departamento)
    ).filter(
        MuestraBotanica.id_paquete.is_not(None),
        ~MuestraBotanica.clasificaciones.any(),
    )
    if conglomerado:
        query = query.join(Paquete, Paquete.id == MuestraBotanica.id_paquete) \
            .join(Conglomerado, Conglomerado.id == Paquete.id_conglomerado) \
            .filter(Conglomerado.codigo == conglomerado)
    return query.order_by(MuestraBotanica.id)


def days_since_reception(received: Optional[date], today: date) -> int:
    """Whole days since the package reached the herbarium; 0 when unknown."""
    if received is None:
        return 0
    return max((today - received).days, 0)


def priority_score(muestra: MuestraBotanica, dias_desde_recepcion: int) -> int:
    prioridad = 0
    if dias_desde_recepcion > STALE_AFTER_DAYS:
        prioridad += 50
    if muestra.familia_identificada:
        prioridad += 20
    if muestra.paquete is not None and muestra.paquete.estado == PackageState.EN_PROCESO:
        prioridad += 30
    if not _has_text(muestra.observaciones):
        prioridad -= 10
    return prioridad


def classification_difficulty(muestra: MuestraBotanica) -> Difficulty:
    observaciones = muestra.observaciones or ""
    puntos = 0
    if not muestra.familia_identificada:
        puntos += 30
    if not muestra.genero_identificado:
        puntos += 20
    if len(observaciones) < 10:
        puntos += 15
    if muestra.familia_identificada and muestra.genero_identificado:
        puntos -= 25
    if len(observaciones) > 50:
        puntos -= 10

    if puntos < 20:
        return Difficulty.FACIL
    if puntos < 40:
        return Difficulty.MODERADA
    return Difficulty.DIFICIL


def build_lab_queue(muestras: List[MuestraBotanica], today: Optional[date] = None) -> dict:
    """
    Rank pending samples and group them by conglomerate.

    Returns:
        {"muestras_pendientes": [ConglomerateGroup, ...], "estadisticas": {...}}
    """
    today = today or date.today()

    queued = []
    for m in muestras:
        dias = days_since_reception(m.paquete.fecha_recibido_herbario if m.paquete else None, today)
        queued.append(QueuedSample(
            muestra=m,
            prioridad=priority_score(m, dias),
            dias_desde_recepcion=dias,
            nivel_dificultad=classification_difficulty(m),
        ))

    groups: Dict[str, ConglomerateGroup] = {}
    for q in queued:
        conglomerado = q.muestra.paquete.conglomerado if q.muestra.paquete else None
        if conglomerado is None:
            group = groups.setdefault(NO_CONGLOMERATE, ConglomerateGroup(codigo=NO_CONGLOMERATE))
        else:
            group = groups.get(conglomerado.codigo)
            if group is None:
                ubicacion = None
                if conglomerado.latitud_dec is not None and conglomerado.longitud_dec is not None:
                    ubicacion = f"{conglomerado.latitud_dec}, {conglomerado.longitud_dec}"
                group = groups[conglomerado.codigo] = ConglomerateGroup(
                    codigo=conglomerado.codigo,
                    municipio=conglomerado.municipio.nombre if conglomerado.municipio else None,
                    ubicacion=ubicacion,
                )
        group.muestras.append(q)

    for group in groups.values():
        group.muestras.sort(key=lambda q: q.prioridad, reverse=True)
    ordered = sorted(groups.values(), key=lambda g: g.prioridad_promedio, reverse=True)

    distribucion = {d.value: 0 for d in Difficulty}
    for q in queued:
        distribucion[q.nivel_dificultad.value] += 1

    promedio_dias = 0
    if queued:
        promedio_dias = _round_half_up(sum(q.dias_desde_recepcion for q in queued) / len(queued))

    logger.debug(f"Lab queue: {len(queued)} pending samples in {len(ordered)} conglomerates")
    return {
        "muestras_pendientes": ordered,
        "estadisticas": {
            "total_muestras": len(queued),
            "promedio_dias_pendientes": promedio_dias,
            "distribucion_dificultad": distribucion,
            "conglomerados_activos": len(ordered),
        },
    }
