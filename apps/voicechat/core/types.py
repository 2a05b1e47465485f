from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["system", "user", "assistant"]


class ConversationMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str

    def to_wire(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


class VoiceCatalog(str, Enum):
    primary = "google"
    secondary = "openai"


class Gender(str, Enum):
    male = "male"
    female = "female"


class Voice(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., description="Display name shown in the voice selector")
    gender: Gender
    language: str = Field(..., description="BCP-47 language tag")
    catalog: VoiceCatalog
    provider_voice: str = Field(..., description="Voice name sent to the backing speech service")

    def to_public(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "gender": self.gender.value,
            "language": self.language,
            "type": self.catalog.value,
        }


# --- Provider results (validated at the SDK boundary) ---


class ChatResult(BaseModel):
    text: str = ""


class ImageResult(BaseModel):
    base64: str = ""
    mime_type: str = "image/png"

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.base64}"


class TranscriptionResult(BaseModel):
    text: str = ""


class SpeechResult(BaseModel):
    audio: bytes = b""
    media_type: str = "audio/wav"


# --- HTTP responses ---


class ChatOut(BaseModel):
    success: bool = True
    response: str


class ClearOut(BaseModel):
    success: bool = True
    message: str = "Conversation history cleared"


class ImageOut(BaseModel):
    success: bool = True
    image: str
    prompt: str
    size: str


class TranscribeOut(BaseModel):
    success: bool = True
    transcription: str


class VoicesOut(BaseModel):
    success: bool = True
    voices: List[Dict[str, Any]] = Field(default_factory=list)
