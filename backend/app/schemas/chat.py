from typing import Any

from pydantic import BaseModel, Field, field_validator

MAX_MESSAGE_LEN = 4000


class ChatRequest(BaseModel):
    message: str
    user_id: str
    session_id: str | None = None
    context: dict[str, Any] = Field(default_factory=dict)

    @field_validator("message")
    @classmethod
    def validate_message(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Message is required and must be a non-empty string")
        if len(v) > MAX_MESSAGE_LEN:
            raise ValueError(f"message must be at most {MAX_MESSAGE_LEN} characters")
        return v

    @field_validator("user_id")
    @classmethod
    def validate_user_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("User ID is required for personalized chat")
        return v


class ChatResponse(BaseModel):
    success: bool
    response: str
    metadata: dict[str, Any] = Field(default_factory=dict)
