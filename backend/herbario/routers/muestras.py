"""Botanical sample endpoints: lab work queues, herbarium listing and file lookup."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from herbario.database import get_db
from herbario.models import (
    Archivo, ClasificacionHerbario, ClassificationState, Conglomerado, Especie,
    Genero, MuestraBotanica, Municipio, Paquete,
)
from herbario.schemas import (
    ArchivoResponse, ColaLaboratorioResponse, ConglomeradoCola, EstadisticasCola, EstadisticasGrupoCola,
    GrupoCola, MuestraClasificadaResponse, MuestraEnCola, MuestraPendienteResponse,
    MuestraPorEstadoResponse, MuestraResponse, MuestraUpdate, UbicacionConglomerado,
)
from herbario.services.lab_queue import NO_CONGLOMERATE, build_lab_queue, pending_samples_query
from herbario.services.package_state import COMPLETED_STATES, refresh_package_state

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/muestras", tags=["muestras"])
archivos_router = APIRouter(prefix="/archivos", tags=["archivos"])


def _sample_options():
    return joinedload(MuestraBotanica.paquete) \
        .joinedload(Paquete.conglomerado) \
        .joinedload(Conglomerado.municipio) \
        .joinedload(Municipio.departamento)


def _species_options():
    return joinedload(ClasificacionHerbario.especie) \
        .joinedload(Especie.genero) \
        .joinedload(Genero.familia)


def _location(conglomerado: Optional[Conglomerado]) -> UbicacionConglomerado:
    if conglomerado is None:
        return UbicacionConglomerado()
    municipio = conglomerado.municipio
    departamento = municipio.departamento if municipio else None
    return UbicacionConglomerado(
        codigo=conglomerado.codigo,
        municipio=municipio.nombre if municipio else None,
        departamento=departamento.nombre if departamento else None,
    )


def _conglomerate_label(conglomerado: Optional[Conglomerado]) -> str:
    """'<codigo> - <municipio>, <departamento>' when the municipality is known."""
    if conglomerado is None:
        return NO_CONGLOMERATE
    ubicacion = _location(conglomerado)
    if ubicacion.municipio:
        return f"{ubicacion.codigo} - {ubicacion.municipio}, {ubicacion.departamento or ubicacion.municipio}"
    return ubicacion.codigo


def _pending_item(m: MuestraBotanica) -> MuestraPendienteResponse:
    item = MuestraPendienteResponse.model_validate(m)
    if m.paquete:
        item.num_paquete = m.paquete.num_paquete
        item.fecha_recibido_herbario = m.paquete.fecha_recibido_herbario
        item.conglomerado = _location(m.paquete.conglomerado)
    return item


@router.get("/pendientes", response_model=List[MuestraPendienteResponse])
def list_muestras_pendientes(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    conglomerado: Optional[str] = Query(None, description="Conglomerate code"),
    db: Session = Depends(get_db)
):
    """Samples already assigned to a package that have no classification yet."""
    muestras = pending_samples_query(db, conglomerado).offset(offset).limit(limit).all()
    return [_pending_item(m) for m in muestras]


@router.get("/pendientes/cola", response_model=ColaLaboratorioResponse)
def get_cola_laboratorio(
    conglomerado: Optional[str] = Query(None, description="Conglomerate code"),
    db: Session = Depends(get_db)
):
    """
    Lab work queue: every pending sample scored by priority and difficulty,
    grouped by conglomerate with per-group and overall figures.
    """
    queue = build_lab_queue(pending_samples_query(db, conglomerado).all())

    grupos = []
    for group in queue["muestras_pendientes"]:
        grupos.append(GrupoCola(
            conglomerado=ConglomeradoCola(
                codigo=group.codigo,
                municipio=group.municipio,
                ubicacion=group.ubicacion,
                prioridad_promedio=group.prioridad_promedio,
            ),
            muestras=[
                MuestraEnCola(
                    **_pending_item(q.muestra).model_dump(),
                    prioridad=q.prioridad,
                    dias_desde_recepcion=q.dias_desde_recepcion,
                    nivel_dificultad=q.nivel_dificultad.value,
                )
                for q in group.muestras
            ],
            estadisticas=EstadisticasGrupoCola(
                total=len(group.muestras),
                alta_prioridad=group.alta_prioridad,
                con_identificacion_previa=group.con_identificacion_previa,
            ),
        ))

    return ColaLaboratorioResponse(
        muestras_pendientes=grupos,
        estadisticas=EstadisticasCola(**queue["estadisticas"]),
        filtros_aplicados={"conglomerado": conglomerado},
    )


@router.get("/clasificadas", response_model=List[MuestraClasificadaResponse])
def list_muestras_clasificadas(db: Session = Depends(get_db)):
    """Digital herbarium: samples with a finished classification and a species."""
    try:
        clasificaciones = db.query(ClasificacionHerbario).options(
            joinedload(ClasificacionHerbario.muestra).options(_sample_options()),
            _species_options(),
        ).filter(
            ClasificacionHerbario.estado.in_(list(COMPLETED_STATES)),
            ClasificacionHerbario.id_especie.is_not(None),
        ).order_by(ClasificacionHerbario.id).all()
    except SQLAlchemyError as e:
        logger.error(f"Error loading classified samples: {e}")
        raise HTTPException(
            status_code=500,
            detail={"error": "Error obteniendo muestras clasificadas", "details": str(e)},
        )

    result = []
    for c in clasificaciones:
        muestra = c.muestra
        paquete = muestra.paquete
        especie = c.especie
        genero = especie.genero
        familia = genero.familia if genero else None

        nombre_cientifico = f"{genero.nombre} {especie.nombre}" if genero else especie.nombre
        ubicacion = _location(paquete.conglomerado if paquete else None)
        lugar = ", ".join(p for p in (ubicacion.departamento, ubicacion.municipio) if p)

        result.append(MuestraClasificadaResponse(
            id=muestra.id,
            codigo=f"{paquete.num_paquete if paquete else 'N/A'}-{muestra.num_individuo or '?'}",
            nombre_cientifico=nombre_cientifico or None,
            nombre_comun=especie.nombre_comun,
            familia=familia.nombre if familia else None,
            genero=genero.nombre if genero else None,
            especie=especie.nombre,
            colector=muestra.colector,
            num_coleccion=muestra.num_coleccion,
            fecha_coleccion=muestra.fecha_coleccion,
            ubicacion=lugar,
            conglomerado=ubicacion.codigo,
            observaciones=muestra.observaciones,
            estado_clasificacion=c.estado,
            estado_reproductivo=c.estado_reproductivo,
            id_foto=c.id_foto,
            id_clasificacion=c.id,
        ))

    logger.debug(f"{len(result)} classified samples listed")
    return result


@router.get("/estado/{estado}", response_model=List[MuestraPorEstadoResponse])
def list_muestras_por_estado(
    estado: str,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db)
):
    """Classifications in one state joined with their sample, newest first."""
    try:
        estado_clasificacion = ClassificationState(estado)
    except ValueError:
        raise HTTPException(status_code=400, detail="Estado inválido")

    clasificaciones = db.query(ClasificacionHerbario).options(
        joinedload(ClasificacionHerbario.muestra).options(_sample_options()),
        _species_options(),
        joinedload(ClasificacionHerbario.foto),
    ).filter(
        ClasificacionHerbario.estado == estado_clasificacion
    ).order_by(
        ClasificacionHerbario.created_at.desc(), ClasificacionHerbario.id.desc()
    ).offset(offset).limit(limit).all()

    result = []
    for c in clasificaciones:
        muestra = c.muestra
        paquete = muestra.paquete
        genero = c.especie.genero if c.especie else None
        result.append(MuestraPorEstadoResponse(
            id=muestra.id,
            id_clasificacion=c.id,
            num_coleccion=muestra.num_coleccion,
            num_individuo=muestra.num_individuo,
            paquete_numero=paquete.num_paquete if paquete else None,
            colector=muestra.colector,
            fecha_recepcion=paquete.fecha_recibido_herbario if paquete else None,
            nombre_conglomerado=_conglomerate_label(paquete.conglomerado if paquete else None),
            estado=c.estado,
            especie_nombre=c.especie.nombre if c.especie else "No identificada",
            familia=genero.familia.nombre if genero and genero.familia else "--",
            genero=genero.nombre if genero else "--",
            estado_reproductivo=c.estado_reproductivo,
            foto=ArchivoResponse.model_validate(c.foto) if c.foto else None,
            id_determinador=c.id_determinador,
            fecha_clasificacion=c.created_at,
        ))
    return result


@router.put("/{muestra_id}", response_model=MuestraResponse)
def update_muestra(muestra_id: int, data: MuestraUpdate, db: Session = Depends(get_db)):
    """Partially update a sample. Moving it to another package re-derives both packages."""
    muestra = db.get(MuestraBotanica, muestra_id)
    if not muestra:
        raise HTTPException(status_code=404, detail="Muestra no encontrada")

    values = data.model_dump(exclude_unset=True)
    if values.get("id_paquete") is not None and not db.get(Paquete, values["id_paquete"]):
        raise HTTPException(status_code=404, detail="Paquete no encontrado")

    previous_package = muestra.id_paquete
    for key, value in values.items():
        setattr(muestra, key, value)

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error updating sample {muestra_id}: {e}")
        raise HTTPException(status_code=500, detail={"error": "Error actualizando muestra", "details": str(e)})

    db.refresh(muestra)
    if "id_paquete" in values and values["id_paquete"] != previous_package:
        _refresh_packages(db, previous_package, muestra.id_paquete)
    return muestra


def _refresh_packages(db: Session, *ids: Optional[int]) -> None:
    """Re-derive packages after a sample moved. The move is already committed."""
    for id_paquete in ids:
        if id_paquete is None:
            continue
        try:
            refresh_package_state(db, id_paquete)
        except Exception as e:
            db.rollback()
            logger.warning(f"Package state update for package {id_paquete} failed: {e}")


@archivos_router.get("/{archivo_id}", response_model=ArchivoResponse)
def get_archivo(archivo_id: int, db: Session = Depends(get_db)):
    archivo = db.get(Archivo, archivo_id)
    if not archivo:
        raise HTTPException(status_code=404, detail="Archivo no encontrado")
    return archivo
