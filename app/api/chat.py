import time
import asyncio
import uuid
from contextlib import aclosing
from typing import AsyncGenerator, List, Optional
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from langchain_core.messages import BaseMessage
from app.logging import get_logger
from app.api.models import ChatRequest, ChatResponse, sse_event
from app.config import settings
from app.api.deps import get_context_resolver, get_narrator_llm

from app.agents.narrator.context import ContextResolver, DetectedScene
from app.agents.narrator.llm import NarratorLLM, build_messages
from app.agents.narrator.multiplexer import NarrationMultiplexer, split_narration
from app.agents.narrator.prompts import build_system_prompt

router = APIRouter()
logger = get_logger("chat")

async def stream_narration(
    llm: NarratorLLM,
    messages: List[BaseMessage],
    scene: Optional[DetectedScene],
    request_id: str,
    idle_timeout: float,
    max_narration_chars: int,
) -> AsyncGenerator[str, None]:
    start_time = time.time()
    delta_count = 0
    event_count = 0
    mux = NarrationMultiplexer(
        scene_name=scene.name if scene else None,
        max_narration_chars=max_narration_chars,
    )

    try:
        if scene:
            yield sse_event({"scene": scene.model_dump()})

        async with aclosing(llm.astream(messages)) as deltas:
            iterator = deltas.__aiter__()
            while True:
                try:
                    delta = await asyncio.wait_for(anext(iterator), timeout=idle_timeout)
                except StopAsyncIteration:
                    break
                delta_count += 1
                for event in mux.feed(delta):
                    event_count += 1
                    yield sse_event(event)

        for event in mux.finish():
            event_count += 1
            yield sse_event(event)

        elapsed = time.time() - start_time

        if delta_count == 0:
            logger.warning(f"[{request_id}] zero deltas streamed")

        logger.info(f"[{request_id}] complete | elapsed={elapsed:.2f}s | deltas={delta_count} | events={event_count}")
        yield sse_event({"done": True})
    except asyncio.CancelledError:
        # Client went away. aclosing() has already shut the upstream stream down.
        logger.info(f"[{request_id}] client disconnected after {delta_count} deltas")
        raise
    except asyncio.TimeoutError:
        logger.error(f"[{request_id}] upstream idle for {idle_timeout}s, aborting")
        yield sse_event({"error": f"LLM stream idle for more than {idle_timeout:g}s"})
        yield sse_event({"done": True})
    except Exception as e:
        logger.error(f"[{request_id}] error: {e}")
        # Events already flushed stay with the client; unflushed buffered text is dropped.
        yield sse_event({"error": str(e)})
        yield sse_event({"done": True})

@router.post("/chat", response_model=ChatResponse, response_model_exclude_none=True)
async def chat(
    request: ChatRequest,
    resolver: ContextResolver = Depends(get_context_resolver),
    llm: NarratorLLM = Depends(get_narrator_llm),
):
    request_id = str(uuid.uuid4())[:8]
    logger.info(
        f"[{request_id}] request | mode={request.mode} "
        f"stream={request.stream} "
        f"messages={len(request.messages)}"
    )

    resolved = await resolver.resolve(request.messages[-1].content)
    messages = build_messages(build_system_prompt(request.mode, resolved.context), request.messages)

    if not request.stream:
        try:
            text = await llm.ainvoke(messages)
        except Exception as e:
            logger.error(f"[{request_id}] error: {e}")
            raise HTTPException(status_code=502, detail=f"LLM provider error: {e}")

        split = split_narration(text, resolved.scene.name if resolved.scene else None)
        if not split.response and not split.narrations:
            return ChatResponse(response="No response generated", scene=resolved.scene)

        logger.info(f"[{request_id}] complete | narrations={len(split.narrations)}")
        return ChatResponse(
            response=split.response,
            narration=split.narration,
            narrations=split.narrations,
            scene=resolved.scene,
        )

    return StreamingResponse(
        stream_narration(
            llm,
            messages,
            resolved.scene,
            request_id,
            idle_timeout=settings.STREAM_IDLE_TIMEOUT,
            max_narration_chars=settings.NARRATION_MAX_CHARS,
        ),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
