"""Business rules around classification records of a sample."""
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from herbario.models import ClasificacionHerbario, MuestraBotanica
from herbario.services.package_state import IN_PROGRESS_STATES

EDITABLE_STATES = IN_PROGRESS_STATES


def current_classification(db: Session, id_muestra: int) -> Optional[ClasificacionHerbario]:
    """Most recent classification of a sample, or None."""
    return db.execute(
        select(ClasificacionHerbario)
        .where(ClasificacionHerbario.id_muestra == id_muestra)
        .order_by(ClasificacionHerbario.created_at.desc(), ClasificacionHerbario.id.desc())
        .limit(1)
    ).scalar_one_or_none()


def require_sample(db: Session, id_muestra: int) -> MuestraBotanica:
    muestra = db.get(MuestraBotanica, id_muestra)
    if not muestra:
        raise HTTPException(status_code=404, detail="Muestra no encontrada")
    return muestra


def ensure_no_classification_in_progress(
    db: Session,
    id_muestra: int,
    exclude_id: Optional[int] = None,
) -> None:
    """
    At most one borrador/en_analisis classification may exist per sample.

    Raises 409 when another in-progress classification is found.
    """
    stmt = select(ClasificacionHerbario.id).where(
        ClasificacionHerbario.id_muestra == id_muestra,
        ClasificacionHerbario.estado.in_(list(IN_PROGRESS_STATES)),
    )
    if exclude_id is not None:
        stmt = stmt.where(ClasificacionHerbario.id != exclude_id)

    if db.execute(stmt.limit(1)).first() is not None:
        raise HTTPException(
            status_code=409,
            detail={
                "error": "Clasificación duplicada",
                "mensaje": f"La muestra {id_muestra} ya tiene una clasificación en proceso",
                "detalle": "Complete o actualice la clasificación en estado borrador o en_analisis antes de crear una nueva.",
            },
        )


def ensure_editable(clasificacion: ClasificacionHerbario) -> None:
    if clasificacion.estado not in EDITABLE_STATES:
        estado = getattr(clasificacion.estado, "value", clasificacion.estado)
        raise HTTPException(
            status_code=409,
            detail={
                "error": "Clasificación no editable",
                "mensaje": f"La clasificación existente tiene estado '{estado}' y no puede ser modificada.",
                "detalle": "Solo se pueden editar clasificaciones en estado borrador o en_analisis.",
            },
        )
