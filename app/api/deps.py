from fastapi import Depends, Request

from app.agents.narrator.context import ContextResolver
from app.agents.narrator.llm import NarratorLLM
from app.db.scripts import ScriptStore

# Collaborators are built once in the app lifespan and kept on app.state.
# Tests replace these functions through app.dependency_overrides.


def get_script_store(req: Request) -> ScriptStore:
    return req.app.state.script_store


def get_narrator_llm(req: Request) -> NarratorLLM:
    return req.app.state.narrator_llm


def get_context_resolver(store: ScriptStore = Depends(get_script_store)) -> ContextResolver:
    return ContextResolver(store)
