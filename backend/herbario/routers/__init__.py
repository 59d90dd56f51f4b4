from herbario.routers.clasificaciones import router as clasificaciones_router
from herbario.routers.estadisticas import router as estadisticas_router
from herbario.routers.muestras import router as muestras_router, archivos_router
from herbario.routers.paquetes import router as paquetes_router, admin_router
from herbario.routers.taxonomia import router as taxonomia_router

__all__ = [
    "clasificaciones_router", "estadisticas_router", "muestras_router", "archivos_router",
    "paquetes_router", "admin_router", "taxonomia_router",
]
