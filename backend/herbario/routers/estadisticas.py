"""Statistics API endpoints for the herbarium dashboards."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from herbario.config import settings
from herbario.database import get_db
from herbario.schemas import EstadisticasResponse, TaxonStat
from herbario.services.statistics import (
    LocationType, TaxonLevel, compute_statistics, fetch_classified_specimens, rank_taxa_by_location,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/estadisticas", tags=["estadisticas"])

REQUIRED_TAXONOMY_PARAMS = "Parámetros requeridos: ubicacion, tipo (departamento/region), nivel (familia/genero)"


@router.get("", response_model=EstadisticasResponse)
def get_estadisticas(db: Session = Depends(get_db)):
    """
    Department, region and threat-category statistics over every specimen
    classified as completado or firmado.
    """
    try:
        specimens = fetch_classified_specimens(db)
    except SQLAlchemyError as e:
        logger.error(f"Error loading statistics: {e}")
        raise HTTPException(status_code=500, detail={"error": "Error obteniendo estadísticas", "details": str(e)})

    return compute_statistics(specimens, top_n=settings.statistics_top_n)


@router.get("/taxonomia", response_model=List[TaxonStat])
def get_estadisticas_taxonomia(
    ubicacion: Optional[str] = Query(None, description="Department or region name"),
    tipo: Optional[str] = Query(None, description="departamento | region"),
    nivel: Optional[str] = Query(None, description="familia | genero"),
    db: Session = Depends(get_db)
):
    """Top families or genera within one department or region."""
    missing = [name for name, value in (("ubicacion", ubicacion), ("tipo", tipo), ("nivel", nivel)) if not value]
    if missing:
        raise HTTPException(
            status_code=400,
            detail={"error": REQUIRED_TAXONOMY_PARAMS, "faltantes": missing},
        )

    try:
        location_type = LocationType(tipo)
        taxon_level = TaxonLevel(nivel)
    except ValueError:
        raise HTTPException(status_code=400, detail={"error": REQUIRED_TAXONOMY_PARAMS})

    try:
        specimens = fetch_classified_specimens(db)
    except SQLAlchemyError as e:
        logger.error(f"Error loading taxonomy statistics for {tipo} '{ubicacion}': {e}")
        raise HTTPException(
            status_code=500,
            detail={"error": "Error obteniendo estadísticas taxonómicas", "details": str(e)},
        )

    return rank_taxa_by_location(
        specimens, ubicacion, location_type, taxon_level, top_n=settings.statistics_top_n
    )
