"""Pydantic schemas for API request/response validation."""
from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, field_validator

from herbario.models import ClassificationState, PackageState, ReproductiveState, ThreatCategory


def _blank_to_none(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


# === Taxonomy Schemas ===
class FamiliaResponse(BaseModel):
    id: int
    nombre: str

    class Config:
        from_attributes = True


class GeneroResponse(BaseModel):
    id: int
    nombre: str
    id_familia: int

    class Config:
        from_attributes = True


class EspecieResponse(BaseModel):
    id: int
    nombre: str
    nombre_comun: Optional[str] = None
    tipo_amenaza: Optional[ThreatCategory] = None
    id_genero: int

    class Config:
        from_attributes = True


class TaxonSearchResult(BaseModel):
    """Autocomplete hit; `genero`/`familia` are filled for lower ranks."""
    id: int
    nombre: str
    nombre_comun: Optional[str] = None
    tipo_amenaza: Optional[ThreatCategory] = None
    genero: Optional[str] = None
    familia: Optional[str] = None


# === File Schemas ===
class ArchivoResponse(BaseModel):
    id: int
    bucket_id: str
    path: str
    name: str
    mime: Optional[str] = None
    size: Optional[int] = None
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# === Classification Schemas ===
class EstadoUpdate(BaseModel):
    """Body of the state-only update routes."""
    estado: ClassificationState


class EstadoUpdateResponse(BaseModel):
    id: int
    estado: ClassificationState
    message: str


class ClasificacionCreate(BaseModel):
    """Schema for creating a new classification."""
    id_muestra: int
    id_especie: Optional[int] = None
    estado: ClassificationState = ClassificationState.BORRADOR
    estado_reproductivo: Optional[ReproductiveState] = None
    id_foto: Optional[int] = None
    id_determinador: Optional[str] = None

    @field_validator("id_determinador", mode="before")
    @classmethod
    def clean_determinador(cls, value):
        return _blank_to_none(value)


class ClasificacionUpdate(BaseModel):
    """Schema for updating a classification; only provided fields change."""
    id_especie: Optional[int] = None
    estado: Optional[ClassificationState] = None
    estado_reproductivo: Optional[ReproductiveState] = None
    id_foto: Optional[int] = None
    id_determinador: Optional[str] = None

    @field_validator("id_determinador", mode="before")
    @classmethod
    def clean_determinador(cls, value):
        return _blank_to_none(value)


class ClasificacionResponse(BaseModel):
    id: int
    id_muestra: int
    id_especie: Optional[int] = None
    estado: ClassificationState
    estado_reproductivo: Optional[ReproductiveState] = None
    id_foto: Optional[int] = None
    id_determinador: Optional[str] = None
    created_at: Optional[datetime] = None
    foto: Optional[ArchivoResponse] = None

    class Config:
        from_attributes = True


class ClasificacionWriteResponse(BaseModel):
    id: int
    message: str
    action: Optional[str] = None


# === Sample Schemas ===
class MuestraUpdate(BaseModel):
    """Schema for updating a sample."""
    num_coleccion: Optional[str] = None
    num_individuo: Optional[str] = None
    colector: Optional[str] = None
    observaciones: Optional[str] = None
    fecha_coleccion: Optional[date] = None
    familia_identificada: Optional[str] = None
    genero_identificado: Optional[str] = None
    id_paquete: Optional[int] = None

    @field_validator("familia_identificada", "genero_identificado", mode="before")
    @classmethod
    def clean_identification(cls, value):
        return _blank_to_none(value)


class MuestraResponse(BaseModel):
    id: int
    num_coleccion: Optional[str] = None
    num_individuo: Optional[str] = None
    colector: Optional[str] = None
    observaciones: Optional[str] = None
    fecha_coleccion: Optional[date] = None
    familia_identificada: Optional[str] = None
    genero_identificado: Optional[str] = None
    id_paquete: Optional[int] = None

    class Config:
        from_attributes = True


class UbicacionConglomerado(BaseModel):
    codigo: Optional[str] = None
    municipio: Optional[str] = None
    departamento: Optional[str] = None


class MuestraPendienteResponse(MuestraResponse):
    num_paquete: Optional[str] = None
    fecha_recibido_herbario: Optional[date] = None
    conglomerado: Optional[UbicacionConglomerado] = None


# === Lab Queue Schemas ===
class MuestraEnCola(MuestraPendienteResponse):
    prioridad: int
    dias_desde_recepcion: int
    nivel_dificultad: str


class ConglomeradoCola(BaseModel):
    codigo: str
    municipio: Optional[str] = None
    ubicacion: Optional[str] = None
    prioridad_promedio: int


class EstadisticasGrupoCola(BaseModel):
    total: int
    alta_prioridad: int
    con_identificacion_previa: int


class GrupoCola(BaseModel):
    conglomerado: ConglomeradoCola
    muestras: List[MuestraEnCola]
    estadisticas: EstadisticasGrupoCola


class EstadisticasCola(BaseModel):
    total_muestras: int
    promedio_dias_pendientes: int
    distribucion_dificultad: Dict[str, int]
    conglomerados_activos: int


class ColaLaboratorioResponse(BaseModel):
    """Pending samples ranked for the lab and grouped by conglomerate."""
    muestras_pendientes: List[GrupoCola]
    estadisticas: EstadisticasCola
    filtros_aplicados: Dict[str, Optional[str]]


class MuestraPorEstadoResponse(BaseModel):
    """Flattened classification + sample row for the lab dashboard."""
    id: int
    id_clasificacion: int
    num_coleccion: Optional[str] = None
    num_individuo: Optional[str] = None
    paquete_numero: Optional[str] = None
    colector: Optional[str] = None
    fecha_recepcion: Optional[date] = None
    nombre_conglomerado: str
    estado: ClassificationState
    especie_nombre: str
    familia: str
    genero: str
    estado_reproductivo: Optional[ReproductiveState] = None
    foto: Optional[ArchivoResponse] = None
    id_determinador: Optional[str] = None
    fecha_clasificacion: Optional[datetime] = None


class MuestraClasificadaResponse(BaseModel):
    """Digital herbarium entry: a sample with its determined species."""
    id: int
    codigo: str
    nombre_cientifico: Optional[str] = None
    nombre_comun: Optional[str] = None
    familia: Optional[str] = None
    genero: Optional[str] = None
    especie: Optional[str] = None
    colector: Optional[str] = None
    num_coleccion: Optional[str] = None
    fecha_coleccion: Optional[date] = None
    ubicacion: str = ""
    conglomerado: Optional[str] = None
    observaciones: Optional[str] = None
    estado_clasificacion: ClassificationState
    estado_reproductivo: Optional[ReproductiveState] = None
    id_foto: Optional[int] = None
    id_clasificacion: int


# === Package Schemas ===
class PaqueteResponse(BaseModel):
    id: int
    num_paquete: str
    fecha_recibido_herbario: Optional[date] = None
    id_conglomerado: Optional[int] = None
    estado: PackageState

    class Config:
        from_attributes = True


class PackageTallyResponse(BaseModel):
    total_muestras: int
    completadas: int
    en_proceso: int
    sin_clasificar: int


class PaqueteDetailResponse(PaqueteResponse):
    """Package with the per-sample classification tally behind its state."""
    resumen: PackageTallyResponse
    estado_derivado: PackageState


class RecomputeResponse(BaseModel):
    id_paquete: int
    estado_anterior: PackageState
    estado: PackageState
    actualizado: bool
    resumen: PackageTallyResponse


class SweepResponse(BaseModel):
    status: str
    paquetes_procesados: int
    errores: int
    detalles: Dict[int, str]


# === Statistics Schemas ===
class DepartmentStat(BaseModel):
    name: str
    specimens: int
    species: int
    percentage: int


class RegionStat(BaseModel):
    name: str
    departments: int
    specimens: int
    species: int
    families: int
    percentage: int


class ThreatStat(BaseModel):
    categoria: str
    count: int
    porcentaje: float


class EstadisticasResponse(BaseModel):
    departamentos: List[DepartmentStat]
    regiones: List[RegionStat]
    especies_amenazadas: List[ThreatStat]
    total_especimenes: int
    total_clasificaciones: int


class TaxonStat(BaseModel):
    name: str
    count: int
    percentage: int
