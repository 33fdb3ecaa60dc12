from typing import AsyncIterator, List, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

_ROLE_TO_MESSAGE = {
    "user": HumanMessage,
    "assistant": AIMessage,
    "system": SystemMessage,
}


def build_messages(system_prompt: str, history: Sequence) -> List[BaseMessage]:
    """Prepend our system prompt to the client's conversation. Client system messages are kept in place."""
    messages: List[BaseMessage] = [SystemMessage(content=system_prompt)]
    for message in history:
        messages.append(_ROLE_TO_MESSAGE[message.role](content=message.content))
    return messages


def _text(chunk) -> str:
    # Safe content coercion: tool-call or multimodal chunks carry non-str content.
    content = getattr(chunk, "content", None)
    return content if isinstance(content, str) else ""


class NarratorLLM:
    """Thin wrapper over the chat model so the route only ever sees text."""

    def __init__(self, model: str):
        self.model = model
        self._streaming = ChatOpenAI(model=model, streaming=True)
        self._blocking = ChatOpenAI(model=model, streaming=False)

    async def astream(self, messages: List[BaseMessage]) -> AsyncIterator[str]:
        async for chunk in self._streaming.astream(messages):
            content = _text(chunk)
            if content:
                yield content

    async def ainvoke(self, messages: List[BaseMessage]) -> str:
        response = await self._blocking.ainvoke(messages)
        return _text(response)
