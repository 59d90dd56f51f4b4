"""Herbarium workflow models: packages, samples, classifications and files."""
import enum

from sqlalchemy import Column, Date, DateTime, Enum, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from herbario.database import Base


class PackageState(str, enum.Enum):
    RECIBIDO = "recibido"
    EN_PROCESO = "en_proceso"
    COMPLETO = "completo"


class ClassificationState(str, enum.Enum):
    BORRADOR = "borrador"
    EN_ANALISIS = "en_analisis"
    FIRMADO = "firmado"
    COMPLETADO = "completado"
    CLASIFICADO = "clasificado"


class ReproductiveState(str, enum.Enum):
    VEGETATIVO = "Vegetativo"
    FLORACION = "Floración"
    FRUCTIFICACION = "Fructificación"
    FLORACION_Y_FRUCTIFICACION = "Floración y Fructificación"
    ESTERIL = "Estéril"


def _enum_values(enum_cls):
    return [e.value for e in enum_cls]


IN_PROGRESS_PREDICATE = "estado IN ('borrador', 'en_analisis')"


class Paquete(Base):
    """Shipment of samples received from a conglomerate. `estado` is derived."""

    __tablename__ = "paquete"

    id = Column(Integer, primary_key=True, index=True)
    num_paquete = Column(String(50), nullable=False)
    fecha_recibido_herbario = Column(Date, nullable=True)
    id_conglomerado = Column(Integer, ForeignKey("conglomerado.id", ondelete="SET NULL"), nullable=True, index=True)
    estado = Column(
        Enum(PackageState, name="estado_paquete", values_callable=_enum_values),
        nullable=False,
        default=PackageState.RECIBIDO,
    )

    conglomerado = relationship("Conglomerado")
    muestras = relationship("MuestraBotanica", back_populates="paquete")

    def __repr__(self):
        return f"<Paquete(id={self.id}, num_paquete='{self.num_paquete}', estado='{self.estado}')>"


class MuestraBotanica(Base):
    __tablename__ = "muestra_botanica"

    id = Column(Integer, primary_key=True, index=True)
    num_coleccion = Column(String(50), nullable=True)
    num_individuo = Column(String(50), nullable=True)
    colector = Column(String(200), nullable=True)
    observaciones = Column(Text, nullable=True)
    fecha_coleccion = Column(Date, nullable=True)
    # determination made in the field, before the lab classifies the sample
    familia_identificada = Column(String(100), nullable=True)
    genero_identificado = Column(String(100), nullable=True)
    id_paquete = Column(Integer, ForeignKey("paquete.id", ondelete="SET NULL"), nullable=True, index=True)

    paquete = relationship("Paquete", back_populates="muestras")
    clasificaciones = relationship("ClasificacionHerbario", back_populates="muestra")


class Archivo(Base):
    """Stored file metadata (classification photos)."""

    __tablename__ = "archivos"

    id = Column(Integer, primary_key=True, index=True)
    bucket_id = Column(String(100), nullable=False)
    path = Column(String(500), nullable=False)
    name = Column(String(255), nullable=False)
    mime = Column(String(100), nullable=True)
    size = Column(Integer, nullable=True)
    user_id = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class ClasificacionHerbario(Base):
    """A taxonomic determination attempt for one sample."""

    __tablename__ = "clasificacion_herbario"

    id = Column(Integer, primary_key=True, index=True)
    id_muestra = Column(Integer, ForeignKey("muestra_botanica.id", ondelete="CASCADE"), nullable=False, index=True)
    id_especie = Column(Integer, ForeignKey("especie.id", ondelete="SET NULL"), nullable=True, index=True)
    estado = Column(
        Enum(ClassificationState, name="estado_clasificacion", values_callable=_enum_values),
        nullable=False,
        default=ClassificationState.BORRADOR,
        index=True,
    )
    estado_reproductivo = Column(
        Enum(ReproductiveState, name="estado_reproductivo", values_callable=_enum_values),
        nullable=True,
    )
    id_foto = Column(Integer, ForeignKey("archivos.id", ondelete="SET NULL"), nullable=True)
    id_determinador = Column(String(36), nullable=True)  # auth user UUID
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # at most one borrador/en_analisis classification per sample
    __table_args__ = (
        Index(
            "uq_clasificacion_en_proceso",
            "id_muestra",
            unique=True,
            postgresql_where=text(IN_PROGRESS_PREDICATE),
            sqlite_where=text(IN_PROGRESS_PREDICATE),
        ),
    )

    muestra = relationship("MuestraBotanica", back_populates="clasificaciones")
    especie = relationship("Especie")
    foto = relationship("Archivo")
