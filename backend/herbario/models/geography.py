"""Geography reference data: Region -> Departamento -> Municipio -> Conglomerado."""
from sqlalchemy import Column, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from herbario.database import Base


class Region(Base):
    __tablename__ = "region"

    id = Column(Integer, primary_key=True, index=True)
    nombre = Column(String(100), nullable=False, unique=True)

    departamentos = relationship("Departamento", back_populates="region")

    def __repr__(self):
        return f"<Region(id={self.id}, nombre='{self.nombre}')>"


class Departamento(Base):
    __tablename__ = "departamento"

    id = Column(Integer, primary_key=True, index=True)
    nombre = Column(String(100), nullable=False, unique=True)
    id_region = Column(Integer, ForeignKey("region.id", ondelete="SET NULL"), nullable=True, index=True)

    region = relationship("Region", back_populates="departamentos")
    municipios = relationship("Municipio", back_populates="departamento")


class Municipio(Base):
    __tablename__ = "municipio"

    id = Column(Integer, primary_key=True, index=True)
    nombre = Column(String(150), nullable=False)
    id_departamento = Column(Integer, ForeignKey("departamento.id", ondelete="CASCADE"), nullable=False, index=True)

    departamento = relationship("Departamento", back_populates="municipios")


class Conglomerado(Base):
    """Field sampling cluster tied to a municipality."""

    __tablename__ = "conglomerado"

    id = Column(Integer, primary_key=True, index=True)
    codigo = Column(String(50), nullable=False, unique=True, index=True)
    latitud_dec = Column(Float, nullable=True)
    longitud_dec = Column(Float, nullable=True)
    id_municipio = Column(Integer, ForeignKey("municipio.id", ondelete="SET NULL"), nullable=True, index=True)

    municipio = relationship("Municipio")
