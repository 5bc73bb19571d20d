from .assets_api import router as assets_api_router
from .assets_ui import router as assets_ui_router
from .borrowers_api import router as borrowers_api_router
from .lending_api import router as lending_api_router

ALL_ROUTERS = (
    assets_api_router,
    borrowers_api_router,
    lending_api_router,
    assets_ui_router,
)
