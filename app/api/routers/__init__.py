"""
app/api/routers package marker.
"""

from app.api.routers.dialer_ingestion import router as dialer_ingestion_router
from app.api.routers.dialer_query import router as dialer_query_router

__all__ = [
    "dialer_ingestion_router",
    "dialer_query_router",
]
