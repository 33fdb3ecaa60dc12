import re
from dataclasses import dataclass
from typing import List, Optional, Protocol

from pydantic import BaseModel

from app.db.scripts import ScriptRecord
from app.logging import get_logger

logger = get_logger("context")

TRIGGER_TERMS = ("script", "scene")
MAX_RECORDS = 3
EXCERPT_CHARS = 300
DEFAULT_SCENE_SUMMARY = "A descriptive scene"

_PUNCTUATION = re.compile(r"[^\w\s]")


class DetectedScene(BaseModel):
    name: str
    summary: str


@dataclass
class ResolvedContext:
    context: str = ""
    scene: Optional[DetectedScene] = None


class DocumentStore(Protocol):
    async def search(self, keywords: List[str], limit: int = MAX_RECORDS) -> List[ScriptRecord]: ...


def mentions_scene(message: str) -> bool:
    # Substring match only: "describe the setting" will not trigger a lookup.
    lowered = message.lower()
    return any(term in lowered for term in TRIGGER_TERMS)


def extract_keywords(message: str) -> List[str]:
    words = _PUNCTUATION.sub("", message.lower()).split()
    keywords: List[str] = []
    for word in words:
        if len(word) > 3 and word not in keywords:
            keywords.append(word)
    return keywords


def build_context_block(records: List[ScriptRecord], excerpt_chars: int = EXCERPT_CHARS) -> str:
    entries = []
    for record in records:
        excerpt = record.content[:excerpt_chars]
        if len(record.content) > excerpt_chars:
            excerpt += "..."
        entries.append(
            f"Title: {record.title}\n"
            f"Description: {record.description or 'N/A'}\n"
            f"Content: {excerpt}"
        )
    return "Relevant script information:\n" + "\n\n".join(entries)


class ContextResolver:
    """Looks up supporting scripts for the latest user message.

    Only messages mentioning a trigger term reach the store. A store failure
    never aborts the turn; it degrades to an empty context.
    """

    def __init__(self, store: DocumentStore, limit: int = MAX_RECORDS, excerpt_chars: int = EXCERPT_CHARS):
        self._store = store
        self._limit = limit
        self._excerpt_chars = excerpt_chars

    async def resolve(self, message: str) -> ResolvedContext:
        if not mentions_scene(message):
            return ResolvedContext()

        keywords = extract_keywords(message)
        if not keywords:
            return ResolvedContext()

        try:
            records = await self._store.search(keywords, limit=self._limit)
        except Exception as e:
            logger.warning(f"script lookup failed, continuing without context: {e}")
            return ResolvedContext()

        # The store is asked for at most `limit` rows, but do not trust it.
        records = list(records)[: self._limit]
        if not records:
            return ResolvedContext()

        first = records[0]
        scene = DetectedScene(name=first.title, summary=first.description or DEFAULT_SCENE_SUMMARY)
        logger.info(f"context resolved | keywords={len(keywords)} records={len(records)} scene={scene.name!r}")
        return ResolvedContext(
            context=build_context_block(records, self._excerpt_chars),
            scene=scene,
        )
