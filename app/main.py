from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.api.chat import router as chat_router
from app.api.status import API_VERSION, router as status_router

from contextlib import asynccontextmanager
from app.agents.narrator.llm import NarratorLLM
from app.db.postgres import create_db_pool
from app.db.scripts import ScriptStore

@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.db_pool = await create_db_pool()
    app.state.script_store = ScriptStore(app.state.db_pool)
    app.state.narrator_llm = NarratorLLM(settings.MODEL_NAME)
    yield
    await app.state.db_pool.close()

app = FastAPI(title="Narrator", version=API_VERSION, lifespan=lifespan)

from app.config import settings

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["POST", "GET", "OPTIONS"],
    allow_headers=["Content-Type"],
)

app.include_router(chat_router)
app.include_router(status_router)


@app.get("/health")
def health():
    return {"status": "ok"}
