# app.py
# Run with: uvicorn app:app --host 0.0.0.0 --port 8000
from contextlib import asynccontextmanager
from fastapi import FastAPI
from loguru import logger
from config import (
    get_db_config,
    get_grid_cell_degrees,
    get_nearby_policy,
    get_ssl_context,
    get_store_backend,
)
from logging_config import setup_logging
from routers.gateway_router import router as gateway_router
from routers.location_router import router as location_router
from routers.message_router import router as message_router
from services.proximity_service import ProximityPolicy, ProximityService
from stores.memory_store import MemorySpatialStore
from stores.postgres_store import PostgresSpatialStore

setup_logging()

def create_store():
    """Build the spatial store selected by STORE_BACKEND."""
    backend = get_store_backend()
    if backend == "memory":
        return MemorySpatialStore(cell_degrees=get_grid_cell_degrees())
    return PostgresSpatialStore(get_db_config(), ssl_context=get_ssl_context())

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the store once and share it through app.state."""
    store = create_store()
    await store.open()
    app.state.store = store
    app.state.proximity_service = ProximityService(store, ProximityPolicy(**get_nearby_policy()))
    logger.info(f"GeoNotes started with {type(store).__name__}")

    yield

    await store.close()
    logger.info("GeoNotes stopped")

app = FastAPI(title="GeoNotes", version="0.1.0", lifespan=lifespan)

@app.get("/health")
async def health():
    return {"status": "ok"}

# Include routers with the desired prefixes
app.include_router(location_router, prefix="/api")
app.include_router(message_router, prefix="/api/messages")
app.include_router(gateway_router, prefix="/api")
