"""
Package State Derivation

A package's `estado` is never authored directly: it is recomputed from the
current classification of each of its samples.

Rules:
- completo:   the package has samples and every one of them is completado,
              firmado or clasificado
- en_proceso: at least one sample is in borrador or en_analisis
- recibido:   anything else (including packages with no samples)

The stored value is written only when it differs from the derived one, so
repeated recomputes over an unchanged snapshot are no-ops.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from herbario.database import SessionLocal
from herbario.models import ClasificacionHerbario, ClassificationState, MuestraBotanica, Paquete, PackageState

logger = logging.getLogger(__name__)

COMPLETED_STATES = frozenset({
    ClassificationState.COMPLETADO,
    ClassificationState.FIRMADO,
    ClassificationState.CLASIFICADO,
})
IN_PROGRESS_STATES = frozenset({
    ClassificationState.BORRADOR,
    ClassificationState.EN_ANALISIS,
})


@dataclass
class PackageTally:
    """Sample counts of one package grouped by classification progress."""
    total: int = 0
    completed: int = 0
    in_progress: int = 0

    @property
    def unclassified(self) -> int:
        return self.total - self.completed - self.in_progress


@dataclass
class RecomputeResult:
    id_paquete: int
    previous_state: PackageState
    state: PackageState
    tally: PackageTally

    @property
    def changed(self) -> bool:
        return self.previous_state != self.state


def _as_state(value) -> Optional[ClassificationState]:
    if value is None or isinstance(value, ClassificationState):
        return value
    return ClassificationState(value)


def tally_classification_states(states: Iterable[Optional[ClassificationState]]) -> PackageTally:
    """Count samples by progress. `None` marks a sample with no classification."""
    tally = PackageTally()
    for raw in states:
        state = _as_state(raw)
        tally.total += 1
        if state in COMPLETED_STATES:
            tally.completed += 1
        elif state in IN_PROGRESS_STATES:
            tally.in_progress += 1
    return tally


def state_from_tally(tally: PackageTally) -> PackageState:
    if tally.total > 0 and tally.completed == tally.total:
        return PackageState.COMPLETO
    if tally.in_progress > 0:
        return PackageState.EN_PROCESO
    return PackageState.RECIBIDO


def derive_package_state(states: Iterable[Optional[ClassificationState]]) -> PackageState:
    """Derive the package state from its samples' current classification states."""
    return state_from_tally(tally_classification_states(states))


def fetch_sample_states(db: Session, id_paquete: int) -> List[Optional[ClassificationState]]:
    """
    Return one entry per sample of the package: the state of its most recent
    classification, or None when the sample has none.

    Uses a single outer join; rows are ordered so the newest classification of
    each sample is seen last and wins.
    """
    stmt = (
        select(MuestraBotanica.id, ClasificacionHerbario.estado)
        .outerjoin(ClasificacionHerbario, ClasificacionHerbario.id_muestra == MuestraBotanica.id)
        .where(MuestraBotanica.id_paquete == id_paquete)
        .order_by(MuestraBotanica.id, ClasificacionHerbario.created_at, ClasificacionHerbario.id)
    )
    current: Dict[int, Optional[ClassificationState]] = {}
    for id_muestra, estado in db.execute(stmt):
        if id_muestra not in current or estado is not None:
            current[id_muestra] = estado
    return list(current.values())


def refresh_package_state(db: Session, id_paquete: int) -> Optional[RecomputeResult]:
    """
    Recompute and persist the state of one package.

    Returns None when the package does not exist.
    """
    paquete = db.get(Paquete, id_paquete)
    if paquete is None:
        return None

    tally = tally_classification_states(fetch_sample_states(db, id_paquete))
    result = RecomputeResult(
        id_paquete=id_paquete,
        previous_state=PackageState(paquete.estado),
        state=state_from_tally(tally),
        tally=tally,
    )

    if result.changed:
        paquete.estado = result.state
        db.commit()
        logger.info(
            f"Package {id_paquete}: {result.previous_state.value} -> {result.state.value} "
            f"({tally.completed}/{tally.total} completed, {tally.in_progress} in progress)"
        )
    else:
        logger.debug(f"Package {id_paquete} unchanged ({result.state.value})")

    return result


def refresh_package_state_for_sample(db: Session, id_muestra: int) -> Optional[RecomputeResult]:
    """Recompute the package owning a sample. No-op for unknown or unpackaged samples."""
    id_paquete = db.execute(
        select(MuestraBotanica.id_paquete).where(MuestraBotanica.id == id_muestra)
    ).scalar_one_or_none()
    if id_paquete is None:
        logger.debug(f"Sample {id_muestra} has no package or does not exist")
        return None
    return refresh_package_state(db, id_paquete)


def refresh_package_state_in_background(id_muestra: int) -> None:
    """
    Background-task entry point. Opens its own session and never raises:
    the classification write that scheduled it has already been answered.
    """
    db = SessionLocal()
    try:
        refresh_package_state_for_sample(db, id_muestra)
    except Exception as e:
        db.rollback()
        logger.warning(f"Package state update for sample {id_muestra} failed (background): {e}")
    finally:
        db.close()


def refresh_all_package_states(db: Session) -> Dict[int, str]:
    """
    Recompute every package.

    Returns:
        Dictionary mapping package id to its state, or "error" when that
        package could not be recomputed
    """
    ids = db.execute(select(Paquete.id).order_by(Paquete.id)).scalars().all()

    results: Dict[int, str] = {}
    for id_paquete in ids:
        try:
            result = refresh_package_state(db, id_paquete)
            results[id_paquete] = result.state.value if result else "error"
        except Exception as e:
            db.rollback()
            logger.error(f"Error recomputing package {id_paquete}: {e}")
            results[id_paquete] = "error"
    return results
