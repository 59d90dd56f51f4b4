"""Package endpoints: listing, detail with sample tally and state recompute."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from herbario.database import get_db
from herbario.models import Paquete, PackageState
from herbario.schemas import (
    PackageTallyResponse, PaqueteDetailResponse, PaqueteResponse, RecomputeResponse, SweepResponse,
)
from herbario.services.package_state import (
    PackageTally, fetch_sample_states, refresh_all_package_states, refresh_package_state,
    state_from_tally, tally_classification_states,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/paquetes", tags=["paquetes"])
admin_router = APIRouter(prefix="/admin", tags=["admin"])


def _tally_response(tally: PackageTally) -> PackageTallyResponse:
    return PackageTallyResponse(
        total_muestras=tally.total,
        completadas=tally.completed,
        en_proceso=tally.in_progress,
        sin_clasificar=tally.unclassified,
    )


@router.get("", response_model=List[PaqueteResponse])
def list_paquetes(
    estado: Optional[PackageState] = Query(None),
    db: Session = Depends(get_db)
):
    query = db.query(Paquete)
    if estado is not None:
        query = query.filter(Paquete.estado == estado)
    return query.order_by(Paquete.id).all()


@router.get("/{paquete_id}", response_model=PaqueteDetailResponse)
def get_paquete(paquete_id: int, db: Session = Depends(get_db)):
    """
    Package with the tally of its samples' current classifications.

    `estado` is the stored value; `estado_derivado` is what a recompute would
    write now. They differ only while a background recompute is pending.
    """
    paquete = db.get(Paquete, paquete_id)
    if not paquete:
        raise HTTPException(status_code=404, detail="Paquete no encontrado")

    tally = tally_classification_states(fetch_sample_states(db, paquete_id))
    return PaqueteDetailResponse(
        id=paquete.id,
        num_paquete=paquete.num_paquete,
        fecha_recibido_herbario=paquete.fecha_recibido_herbario,
        id_conglomerado=paquete.id_conglomerado,
        estado=paquete.estado,
        resumen=_tally_response(tally),
        estado_derivado=state_from_tally(tally),
    )


@router.post("/{paquete_id}/estado/recalcular", response_model=RecomputeResponse)
def recalcular_estado_paquete(paquete_id: int, db: Session = Depends(get_db)):
    """Recompute the package state synchronously and report the outcome."""
    result = refresh_package_state(db, paquete_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Paquete no encontrado")

    return RecomputeResponse(
        id_paquete=result.id_paquete,
        estado_anterior=result.previous_state,
        estado=result.state,
        actualizado=result.changed,
        resumen=_tally_response(result.tally),
    )


@admin_router.post("/paquetes/recalcular", response_model=SweepResponse)
def recalcular_todos_los_paquetes(db: Session = Depends(get_db)):
    """Recompute every package (same job the scheduler runs periodically)."""
    detalles = refresh_all_package_states(db)
    errores = sum(1 for estado in detalles.values() if estado == "error")

    logger.info(f"Manual package sweep: {len(detalles)} packages, {errores} errors")
    return SweepResponse(
        status="ok" if errores == 0 else "partial",
        paquetes_procesados=len(detalles),
        errores=errores,
        detalles=detalles,
    )
