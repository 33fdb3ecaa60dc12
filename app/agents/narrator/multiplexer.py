"""Splits a streamed LLM reply into plain chat text and narration blocks.

The model marks stage direction with [NARRATION] ... [/NARRATION]. Plain text
is re-emitted as it arrives; a narration block is emitted once, whole, when
its close delimiter has been seen. Delimiters may be split across deltas, so
matching runs against a small held-back tail rather than per delta.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from app.logging import get_logger

logger = get_logger("multiplexer")

OPEN_DELIMITER = "[NARRATION]"
CLOSE_DELIMITER = "[/NARRATION]"
FALLBACK_SCENE = "Narration"
MAX_NARRATION_CHARS = 16_000
MAX_HELD_WHITESPACE = 1_024


class MuxState(str, Enum):
    PLAIN = "plain"
    NARRATING = "narrating"


def content_event(text: str) -> dict:
    return {"content": text}


def script_event(script: str, scene: str) -> dict:
    return {"type": "script", "script": script, "scene": scene}


def _partial_suffix(text: str, token: str) -> int:
    """Length of the longest suffix of `text` that is a proper prefix of `token`."""
    for size in range(min(len(text), len(token) - 1), 0, -1):
        if text.endswith(token[:size]):
            return size
    return 0


class NarrationMultiplexer:
    """Stateful scanner for one reply. Not shared between requests.

    A plain segment is the text between two delimiter boundaries (or the
    start/end of the reply). A whitespace-only segment followed by an open
    delimiter is dropped, so the leading whitespace of a segment is held
    until its first visible character arrives (at most `max_held_whitespace`
    chars). Whatever is still held when the reply ends is flushed.
    """

    def __init__(
        self,
        scene_name: Optional[str] = None,
        max_narration_chars: int = MAX_NARRATION_CHARS,
        max_held_whitespace: int = MAX_HELD_WHITESPACE,
    ):
        self.scene_name = scene_name or FALLBACK_SCENE
        self.max_narration_chars = max_narration_chars
        self.max_held_whitespace = max_held_whitespace
        self.state = MuxState.PLAIN
        self._pending = ""
        self._segment_started = False
        self._narration = ""

    def feed(self, delta: str) -> List[dict]:
        events: List[dict] = []
        text = delta
        # A single delta may close one block and open the next.
        while text:
            if self.state is MuxState.PLAIN:
                text = self._scan_plain(text, events)
            else:
                text = self._scan_narration(text, events)
        return events

    def finish(self) -> List[dict]:
        events: List[dict] = []
        if self.state is MuxState.NARRATING:
            # Unterminated block: keep the text rather than lose it.
            if self._narration:
                logger.info(f"unterminated narration flushed as content | chars={len(self._narration)}")
                events.append(content_event(self._narration))
        elif self._pending:
            # No delimiter can follow any more, so held whitespace is real content.
            events.append(content_event(self._pending))

        self.state = MuxState.PLAIN
        self._pending = ""
        self._segment_started = False
        self._narration = ""
        return events

    def _scan_plain(self, text: str, events: List[dict]) -> str:
        buffer = self._pending + text
        idx = buffer.find(OPEN_DELIMITER)

        if idx == -1:
            keep = _partial_suffix(buffer, OPEN_DELIMITER)
            ready = buffer[: len(buffer) - keep]
            overflow = len(ready) > self.max_held_whitespace
            if ready and (self._segment_started or ready.strip() or overflow):
                events.append(content_event(ready))
                self._segment_started = True
                self._pending = buffer[len(ready):]
            else:
                self._pending = buffer
            return ""

        before = buffer[:idx]
        if before and (self._segment_started or before.strip()):
            events.append(content_event(before))
        self._pending = ""
        self._segment_started = False
        self._narration = ""
        self.state = MuxState.NARRATING
        return buffer[idx + len(OPEN_DELIMITER):]

    def _scan_narration(self, text: str, events: List[dict]) -> str:
        # Only the tail that could hold a split close delimiter needs rescanning.
        search_from = max(0, len(self._narration) - (len(CLOSE_DELIMITER) - 1))
        self._narration += text
        idx = self._narration.find(CLOSE_DELIMITER, search_from)

        if idx == -1:
            if len(self._narration) > self.max_narration_chars:
                self._abandon_narration(events)
            return ""

        script = self._narration[:idx].strip()
        rest = self._narration[idx + len(CLOSE_DELIMITER):]
        self._narration = ""
        self._segment_started = False
        self.state = MuxState.PLAIN
        if script:
            events.append(script_event(script, self.scene_name))
        return rest

    def _abandon_narration(self, events: List[dict]) -> None:
        logger.warning(
            f"narration exceeded {self.max_narration_chars} chars without close delimiter; "
            "flushing as content"
        )
        text = self._narration
        self._narration = ""
        self.state = MuxState.PLAIN
        self._segment_started = bool(text.strip())
        if self._segment_started:
            events.append(content_event(text))


@dataclass
class NarrationSplit:
    response: str
    narrations: List[str] = field(default_factory=list)

    @property
    def narration(self) -> Optional[str]:
        return "\n\n".join(self.narrations) if self.narrations else None


def split_narration(text: str, scene_name: Optional[str] = None) -> NarrationSplit:
    """Run the multiplexer once over a complete reply. Every block is collected, not just the first."""
    mux = NarrationMultiplexer(scene_name, max_narration_chars=len(text) + 1)
    parts: List[str] = []
    narrations: List[str] = []
    after_block = False
    for event in mux.feed(text) + mux.finish():
        if event.get("type") == "script":
            narrations.append(event["script"])
            after_block = True
            continue
        piece = event["content"]
        # Close the gap a removed block leaves: "Sure! " + " Stay" -> "Sure! Stay".
        if after_block and parts and parts[-1][-1:] in (" ", "\t"):
            piece = piece.lstrip(" \t")
        after_block = False
        parts.append(piece)
    return NarrationSplit(response="".join(parts).strip(), narrations=narrations)
