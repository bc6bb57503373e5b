"""Wire shapes exchanged with the browser client."""
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

Role = Literal["user", "assistant", "other"]


class ConversationSummary(BaseModel):
    id: str = Field(..., min_length=1, description="Opaque upstream thread id.")
    title: str
    created_at: int = Field(..., description="Unix seconds.")


class TextValue(BaseModel):
    value: str


class ContentBlock(BaseModel):
    text: TextValue


class Message(BaseModel):
    id: str
    role: Role
    content: List[ContentBlock] = Field(..., min_length=1, max_length=1)


class ModelSummary(BaseModel):
    id: str
    owned_by: str = ""
    created: int = 0


# -----------------------------
# Request bodies
# -----------------------------
class CreateConversationRequest(BaseModel):
    title: Optional[str] = None
