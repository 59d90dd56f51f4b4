"""
Seed data script for the herbarium database.
Populates the five natural regions, the departments of each region (one
municipality and one conglomerate per department) and a starter taxonomy.
Safe to run more than once.
"""
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from sqlalchemy.orm import Session

from herbario.database import SessionLocal
from herbario.models import (
    Conglomerado, Departamento, Especie, Familia, Genero, Municipio, Region, ThreatCategory,
)

DEPARTMENTS_BY_REGION = {
    "Andina": [
        "Cundinamarca", "Boyacá", "Antioquia", "Santander", "Tolima",
        "Huila", "Caldas", "Risaralda", "Quindío", "Norte de Santander",
    ],
    "Caribe": ["Atlántico", "Bolívar", "Cesar", "Córdoba", "La Guajira", "Magdalena", "Sucre"],
    "Pacífica": ["Valle del Cauca", "Cauca", "Nariño", "Chocó"],
    "Orinoquía": ["Meta", "Casanare", "Arauca", "Vichada"],
    "Amazonía": ["Amazonas", "Caquetá", "Guainía", "Guaviare", "Putumayo", "Vaupés"],
}

# (municipality, latitude, longitude) used for each department's sample conglomerate
CAPITALS = {
    "Cundinamarca": ("Zipaquirá", 5.02, -74.0), "Boyacá": ("Tunja", 5.54, -73.36),
    "Antioquia": ("Medellín", 6.25, -75.56), "Santander": ("Bucaramanga", 7.12, -73.12),
    "Tolima": ("Ibagué", 4.44, -75.23), "Huila": ("Neiva", 2.93, -75.28),
    "Caldas": ("Manizales", 5.07, -75.52), "Risaralda": ("Pereira", 4.81, -75.69),
    "Quindío": ("Armenia", 4.53, -75.68), "Norte de Santander": ("Cúcuta", 7.89, -72.5),
    "Atlántico": ("Barranquilla", 10.96, -74.8), "Bolívar": ("Cartagena", 10.39, -75.48),
    "Cesar": ("Valledupar", 10.46, -73.25), "Córdoba": ("Montería", 8.75, -75.88),
    "La Guajira": ("Riohacha", 11.54, -72.91), "Magdalena": ("Santa Marta", 11.24, -74.2),
    "Sucre": ("Sincelejo", 9.3, -75.4), "Valle del Cauca": ("Cali", 3.45, -76.53),
    "Cauca": ("Popayán", 2.44, -76.61), "Nariño": ("Pasto", 1.21, -77.28),
    "Chocó": ("Quibdó", 5.69, -76.66), "Meta": ("Villavicencio", 4.14, -73.63),
    "Casanare": ("Yopal", 5.34, -72.4), "Arauca": ("Arauca", 7.08, -70.76),
    "Vichada": ("Puerto Carreño", 6.19, -67.49), "Amazonas": ("Leticia", -4.22, -69.94),
    "Caquetá": ("Florencia", 1.61, -75.61), "Guainía": ("Inírida", 3.87, -67.92),
    "Guaviare": ("San José del Guaviare", 2.57, -72.64), "Putumayo": ("Mocoa", 1.15, -76.65),
    "Vaupés": ("Mitú", 1.25, -70.23),
}

# familia -> genero -> [(especie, nombre_comun, tipo_amenaza)]
TAXONOMY = {
    "Fabaceae": {
        "Inga": [("edulis", "Guamo", ThreatCategory.LC), ("spectabilis", "Guamo macheto", None)],
        "Erythrina": [("fusca", "Cámbulo", ThreatCategory.LC)],
    },
    "Lauraceae": {
        "Ocotea": [("calophylla", "Laurel", ThreatCategory.VU)],
        "Aniba": [("perutilis", "Comino crespo", ThreatCategory.CR)],
    },
    "Magnoliaceae": {
        "Magnolia": [("hernandezii", "Molinillo", ThreatCategory.EN), ("silvioi", None, ThreatCategory.CR)],
    },
    "Arecaceae": {
        "Ceroxylon": [("quindiuense", "Palma de cera", ThreatCategory.EN)],
        "Euterpe": [("oleracea", "Asaí", ThreatCategory.LC)],
    },
    "Melastomataceae": {
        "Miconia": [("minutiflora", None, None), ("theaezans", "Tuno", ThreatCategory.NT)],
    },
}


def seed_geography(session: Session) -> int:
    """Create missing regions, departments, municipalities and conglomerates."""
    created = 0
    for region_name, departments in DEPARTMENTS_BY_REGION.items():
        region = session.query(Region).filter(Region.nombre == region_name).first()
        if not region:
            region = Region(nombre=region_name)
            session.add(region)
            session.flush()
            created += 1

        for department_name in departments:
            if session.query(Departamento).filter(Departamento.nombre == department_name).first():
                continue
            departamento = Departamento(nombre=department_name, id_region=region.id)
            session.add(departamento)
            session.flush()

            municipio_name, lat, lon = CAPITALS[department_name]
            municipio = Municipio(nombre=municipio_name, id_departamento=departamento.id)
            session.add(municipio)
            session.flush()

            session.add(Conglomerado(
                codigo=f"CONG-{departamento.id:03d}",
                latitud_dec=lat,
                longitud_dec=lon,
                id_municipio=municipio.id,
            ))
            created += 1
    return created


def seed_taxonomy(session: Session) -> int:
    """Create missing families, genera and species."""
    created = 0
    for family_name, genera in TAXONOMY.items():
        familia = session.query(Familia).filter(Familia.nombre == family_name).first()
        if not familia:
            familia = Familia(nombre=family_name)
            session.add(familia)
            session.flush()

        for genus_name, species in genera.items():
            genero = session.query(Genero).filter(
                Genero.nombre == genus_name, Genero.id_familia == familia.id
            ).first()
            if not genero:
                genero = Genero(nombre=genus_name, id_familia=familia.id)
                session.add(genero)
                session.flush()

            for nombre, nombre_comun, amenaza in species:
                exists = session.query(Especie).filter(
                    Especie.nombre == nombre, Especie.id_genero == genero.id
                ).first()
                if exists:
                    continue
                session.add(Especie(
                    nombre=nombre, nombre_comun=nombre_comun, tipo_amenaza=amenaza, id_genero=genero.id
                ))
                created += 1
    return created


def seed_database(session: Session = None):
    """Seed reference data. Uses a fresh session unless one is given."""
    own_session = session is None
    if own_session:
        session = SessionLocal()

    try:
        print("Seeding database...")
        departments = seed_geography(session)
        species = seed_taxonomy(session)
        session.commit()
        print(f"✓ Seeded {departments} regions/departments")
        print(f"✓ Seeded {species} species")
        print("Database seeding complete!")
    except Exception:
        session.rollback()
        raise
    finally:
        if own_session:
            session.close()


if __name__ == "__main__":
    seed_database()
