"""
CRM - API Coleta de Dados

Démarre avec:
    uvicorn server:app --host 0.0.0.0 --port 8001 --reload
"""

from fastapi import FastAPI, APIRouter
from fastapi.middleware.cors import CORSMiddleware
import logging

from config import client, db, CORS_ORIGINS, AUTOSAVE_DELAY_SECONDS
from routes import data_collection, data_collection_schema
from services.autosave import AutosaveScheduler
from services.data_collection_store import MongoDataCollectionStore
from services.schema_admin import SchemaAdmin
from services.session_registry import SessionRegistry

# Configuration logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("server")

app = FastAPI(
    title="CRM Coleta de Dados",
    description="Formulaire dynamique de collecte de données des contacts",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

api_router = APIRouter(prefix="/api")
api_router.include_router(data_collection.router)
api_router.include_router(data_collection_schema.router)
app.include_router(api_router)

# Collaborateurs partagés (remplacés dans les tests)
store = MongoDataCollectionStore(db)
autosave = AutosaveScheduler(delay_seconds=AUTOSAVE_DELAY_SECONDS)
app.state.registry = SessionRegistry(store, autosave)
app.state.schema_admin = SchemaAdmin(db)


@app.get("/")
async def root():
    return {
        "name": "CRM Coleta de Dados API",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs"
    }


# ==================== STARTUP / SHUTDOWN ====================

@app.on_event("startup")
async def startup():
    autosave.start()
    await store.ensure_indexes()
    logger.info("[SERVER] Index MongoDB créés, autosave démarré")


@app.on_event("shutdown")
async def shutdown():
    # Les modifications en attente sont écrites avant l'arrêt du scheduler
    await app.state.registry.close_all()
    autosave.stop()
    client.close()
    logger.info("[SERVER] Arrêt terminé")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
