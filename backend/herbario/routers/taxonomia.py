"""Taxonomy lookup endpoints: cascading selectors and autocomplete search."""
import enum
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session, joinedload

from herbario.database import get_db
from herbario.models import Especie, Familia, Genero
from herbario.schemas import EspecieResponse, FamiliaResponse, GeneroResponse, TaxonSearchResult

router = APIRouter(prefix="/taxonomia", tags=["taxonomia"])

SEARCH_LIMIT = 10


class SearchRank(str, enum.Enum):
    FAMILIA = "familia"
    GENERO = "genero"
    ESPECIE = "especie"


@router.get("/familias", response_model=List[FamiliaResponse])
def list_familias(db: Session = Depends(get_db)):
    return db.query(Familia).order_by(Familia.nombre).all()


@router.get("/generos/{familia_id}", response_model=List[GeneroResponse])
def list_generos(familia_id: int, db: Session = Depends(get_db)):
    """Genera of one family."""
    if not db.get(Familia, familia_id):
        raise HTTPException(status_code=404, detail="Familia no encontrada")
    return db.query(Genero).filter(Genero.id_familia == familia_id).order_by(Genero.nombre).all()


@router.get("/especies/{genero_id}", response_model=List[EspecieResponse])
def list_especies(genero_id: int, db: Session = Depends(get_db)):
    """Species of one genus."""
    if not db.get(Genero, genero_id):
        raise HTTPException(status_code=404, detail="Género no encontrado")
    return db.query(Especie).filter(Especie.id_genero == genero_id).order_by(Especie.nombre).all()


@router.get("/buscar", response_model=List[TaxonSearchResult])
def search_taxonomia(
    termino: str = Query(..., min_length=1),
    tipo: SearchRank = Query(SearchRank.ESPECIE),
    db: Session = Depends(get_db)
):
    """Case-insensitive substring search on taxon names, at most 10 hits."""
    pattern = f"%{termino.strip()}%"

    if tipo == SearchRank.FAMILIA:
        familias = db.query(Familia).filter(Familia.nombre.ilike(pattern)) \
            .order_by(Familia.nombre).limit(SEARCH_LIMIT).all()
        return [TaxonSearchResult(id=f.id, nombre=f.nombre) for f in familias]

    if tipo == SearchRank.GENERO:
        generos = db.query(Genero).options(joinedload(Genero.familia)) \
            .filter(Genero.nombre.ilike(pattern)).order_by(Genero.nombre).limit(SEARCH_LIMIT).all()
        return [
            TaxonSearchResult(id=g.id, nombre=g.nombre, familia=g.familia.nombre if g.familia else None)
            for g in generos
        ]

    especies = db.query(Especie).options(joinedload(Especie.genero).joinedload(Genero.familia)) \
        .filter(Especie.nombre.ilike(pattern)).order_by(Especie.nombre).limit(SEARCH_LIMIT).all()
    return [
        TaxonSearchResult(
            id=e.id,
            nombre=e.nombre,
            nombre_comun=e.nombre_comun,
            tipo_amenaza=e.tipo_amenaza,
            genero=e.genero.nombre if e.genero else None,
            familia=e.genero.familia.nombre if e.genero and e.genero.familia else None,
        )
        for e in especies
    ]
