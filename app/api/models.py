import json
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.agents.narrator.context import DetectedScene


class ChatMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class ChatRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")
    messages: list[ChatMessage] = Field(min_length=1)
    stream: bool = False
    mode: Literal["narrate", "interpret"] = "narrate"

    @field_validator("messages")
    @classmethod
    def last_message_from_user(cls, v: list[ChatMessage]) -> list[ChatMessage]:
        if v[-1].role != "user":
            raise ValueError("Last message must be from user")
        return v


class ChatResponse(BaseModel):
    response: str
    narration: Optional[str] = None
    narrations: list[str] = Field(default_factory=list)
    scene: Optional[DetectedScene] = None


def sse_event(data: dict) -> str:
    return f"data: {json.dumps(data)}\n\n"
