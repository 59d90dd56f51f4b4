"""Taxonomy reference data: Familia -> Genero -> Especie."""
import enum

from sqlalchemy import Column, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from herbario.database import Base


class ThreatCategory(str, enum.Enum):
    CR = "CR"
    EN = "EN"
    VU = "VU"
    NT = "NT"
    LC = "LC"
    NN = "NN"


class Familia(Base):
    __tablename__ = "familia"

    id = Column(Integer, primary_key=True, index=True)
    nombre = Column(String(100), nullable=False, unique=True, index=True)

    generos = relationship("Genero", back_populates="familia")


class Genero(Base):
    __tablename__ = "genero"

    id = Column(Integer, primary_key=True, index=True)
    nombre = Column(String(100), nullable=False, index=True)
    id_familia = Column(Integer, ForeignKey("familia.id", ondelete="CASCADE"), nullable=False, index=True)

    familia = relationship("Familia", back_populates="generos")
    especies = relationship("Especie", back_populates="genero")


class Especie(Base):
    __tablename__ = "especie"

    id = Column(Integer, primary_key=True, index=True)
    nombre = Column(String(150), nullable=False, index=True)
    nombre_comun = Column(String(150), nullable=True)
    tipo_amenaza = Column(
        Enum(
            ThreatCategory,
            name="tipo_amenaza",
            values_callable=lambda enum_cls: [e.value for e in enum_cls],
        ),
        nullable=True,
    )
    id_genero = Column(Integer, ForeignKey("genero.id", ondelete="CASCADE"), nullable=False, index=True)

    genero = relationship("Genero", back_populates="especies")

    def __repr__(self):
        return f"<Especie(id={self.id}, nombre='{self.nombre}')>"
