from plant_tracker.routers.plants import router as plants_router
from plant_tracker.routers.backup import router as backup_router
from plant_tracker.routers.inaturalist import router as inaturalist_router

__all__ = ["plants_router", "backup_router", "inaturalist_router"]
