from fastapi import APIRouter, Depends

from app.api.deps import get_script_store
from app.db.scripts import ScriptStore

router = APIRouter(prefix="/api")

API_VERSION = "0.1.0"


@router.get("/status")
async def status(store: ScriptStore = Depends(get_script_store)):
    connected = await store.ping()
    return {
        "status": "ok",
        "database": "connected" if connected else "disconnected",
        "version": API_VERSION,
    }
