"""
Classification API endpoints.

Every write that may change a classification state schedules a background
recompute of the owning package's state; the response never waits for it.
"""
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Response
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from herbario.database import get_db
from herbario.models import Archivo, ClasificacionHerbario, Especie
from herbario.schemas import (
    ClasificacionCreate, ClasificacionResponse, ClasificacionUpdate,
    ClasificacionWriteResponse, EstadoUpdate, EstadoUpdateResponse,
)
from herbario.services.classification_rules import (
    current_classification, ensure_editable, ensure_no_classification_in_progress, require_sample,
)
from herbario.services.package_state import IN_PROGRESS_STATES, refresh_package_state_in_background

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clasificaciones", tags=["clasificaciones"])


def _check_references(db: Session, values: dict) -> None:
    if values.get("id_especie") is not None and not db.get(Especie, values["id_especie"]):
        raise HTTPException(status_code=404, detail="Especie no encontrada")
    if values.get("id_foto") is not None and not db.get(Archivo, values["id_foto"]):
        raise HTTPException(status_code=404, detail="Archivo no encontrado")


def _commit(db: Session, error_message: str) -> None:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"{error_message}: {e}")
        raise HTTPException(
            status_code=409,
            detail={
                "error": "Clasificación duplicada",
                "mensaje": "La muestra ya tiene una clasificación en proceso",
                "detalle": str(e.orig),
            },
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"{error_message}: {e}")
        raise HTTPException(status_code=500, detail={"error": error_message, "details": str(e)})


# --- State updates ---

@router.put("/id/{clasificacion_id}/estado", response_model=EstadoUpdateResponse)
def update_estado_by_id(
    clasificacion_id: int,
    data: EstadoUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    """Change the state of a classification by its own id (lab dashboard sign/close)."""
    clasificacion = db.get(ClasificacionHerbario, clasificacion_id)
    if not clasificacion:
        raise HTTPException(status_code=404, detail="Clasificación no encontrada")

    if data.estado in IN_PROGRESS_STATES:
        ensure_no_classification_in_progress(db, clasificacion.id_muestra, exclude_id=clasificacion.id)

    id_muestra = clasificacion.id_muestra
    clasificacion.estado = data.estado
    _commit(db, "Error actualizando clasificación")

    background_tasks.add_task(refresh_package_state_in_background, id_muestra)

    logger.debug(f"Classification {clasificacion_id} set to '{data.estado.value}'")
    return EstadoUpdateResponse(id=clasificacion_id, estado=data.estado, message="Estado actualizado")


@router.put("/{muestra_id}/estado", response_model=EstadoUpdateResponse)
def update_estado_by_muestra(
    muestra_id: int,
    data: EstadoUpdate,
    response: Response,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    """
    Set the state of a sample's current classification.

    Creates a classification with that state (201) when the sample has none.
    """
    require_sample(db, muestra_id)
    existing = current_classification(db, muestra_id)

    if existing:
        logger.info(f"Sample {muestra_id}: classification {existing.id} '{existing.estado.value}' -> '{data.estado.value}'")
        if data.estado in IN_PROGRESS_STATES:
            ensure_no_classification_in_progress(db, muestra_id, exclude_id=existing.id)
        existing.estado = data.estado
        clasificacion_id = existing.id
        _commit(db, "Error actualizando estado")
        message = "Estado actualizado"
    else:
        logger.info(f"Sample {muestra_id} has no classification; creating one as '{data.estado.value}'")
        clasificacion = ClasificacionHerbario(id_muestra=muestra_id, estado=data.estado)
        db.add(clasificacion)
        _commit(db, "Error creando clasificación")
        clasificacion_id = clasificacion.id
        message = "Clasificación creada"
        response.status_code = 201

    background_tasks.add_task(refresh_package_state_in_background, muestra_id)
    return EstadoUpdateResponse(id=clasificacion_id, estado=data.estado, message=message)


# --- Reads ---

@router.get("/muestra/{muestra_id}", response_model=Optional[ClasificacionResponse])
def get_clasificacion_de_muestra(muestra_id: int, db: Session = Depends(get_db)):
    """Current classification of a sample, or null when it has none."""
    return current_classification(db, muestra_id)


@router.get("/{clasificacion_id}", response_model=ClasificacionResponse)
def get_clasificacion(clasificacion_id: int, db: Session = Depends(get_db)):
    """Get a classification, including its photo file when present."""
    clasificacion = db.query(ClasificacionHerbario).options(
        joinedload(ClasificacionHerbario.foto)
    ).filter(ClasificacionHerbario.id == clasificacion_id).first()

    if not clasificacion:
        raise HTTPException(status_code=404, detail="Clasificación no encontrada")
    return clasificacion


# --- Create / update ---

@router.post("", response_model=ClasificacionWriteResponse, status_code=201)
def create_clasificacion(
    data: ClasificacionCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    """Register a new classification for a sample."""
    require_sample(db, data.id_muestra)
    values = data.model_dump()
    _check_references(db, values)

    if data.estado in IN_PROGRESS_STATES:
        ensure_no_classification_in_progress(db, data.id_muestra)

    clasificacion = ClasificacionHerbario(**values)
    db.add(clasificacion)
    _commit(db, "Error creando clasificación")

    background_tasks.add_task(refresh_package_state_in_background, data.id_muestra)
    return ClasificacionWriteResponse(id=clasificacion.id, message="Clasificación creada", action="created")


@router.put("/muestra/{muestra_id}", response_model=ClasificacionWriteResponse)
def upsert_clasificacion_de_muestra(
    muestra_id: int,
    data: ClasificacionUpdate,
    response: Response,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    """
    Update the sample's current classification while it is still editable
    (borrador / en_analisis), or create one when the sample has none.
    """
    require_sample(db, muestra_id)
    values = data.model_dump(exclude_unset=True)
    if values.get("estado") is None:
        values.pop("estado", None)
    _check_references(db, values)

    existing = current_classification(db, muestra_id)
    if existing:
        ensure_editable(existing)
        if values.get("estado") in IN_PROGRESS_STATES:
            ensure_no_classification_in_progress(db, muestra_id, exclude_id=existing.id)
        for key, value in values.items():
            setattr(existing, key, value)
        clasificacion = existing
        action, message = "updated", "Clasificación actualizada"
    else:
        clasificacion = ClasificacionHerbario(id_muestra=muestra_id, **values)
        db.add(clasificacion)
        action, message = "created", "Clasificación creada"
        response.status_code = 201

    _commit(db, "Error guardando clasificación")

    background_tasks.add_task(refresh_package_state_in_background, muestra_id)
    return ClasificacionWriteResponse(id=clasificacion.id, message=message, action=action)


@router.put("/{clasificacion_id}", response_model=ClasificacionWriteResponse)
def update_clasificacion(
    clasificacion_id: int,
    data: ClasificacionUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    """Partially update a classification."""
    clasificacion = db.get(ClasificacionHerbario, clasificacion_id)
    if not clasificacion:
        raise HTTPException(status_code=404, detail="Clasificación no encontrada")

    values = data.model_dump(exclude_unset=True)
    if "estado" in values and values["estado"] is None:
        raise HTTPException(status_code=400, detail="estado must not be null")
    _check_references(db, values)

    if values.get("estado") in IN_PROGRESS_STATES:
        ensure_no_classification_in_progress(db, clasificacion.id_muestra, exclude_id=clasificacion.id)

    id_muestra = clasificacion.id_muestra
    for key, value in values.items():
        setattr(clasificacion, key, value)
    _commit(db, "Error actualizando clasificación")

    if "estado" in values:
        background_tasks.add_task(refresh_package_state_in_background, id_muestra)
    return ClasificacionWriteResponse(id=clasificacion_id, message="Clasificación actualizada")
