"""Provider-neutral message shapes sent to the model API.

Message content is either plain text or a list of typed parts. The parts
form a tagged union on ``type`` so malformed payloads fail validation
instead of reaching the provider.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

ImageMediaType = Literal["image/png", "image/jpeg", "image/gif", "image/webp"]


class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ImagePart(BaseModel):
    type: Literal["image"] = "image"
    media_type: ImageMediaType
    data: str = Field(..., description="Base64-encoded image bytes")


class DocumentPart(BaseModel):
    type: Literal["document"] = "document"
    media_type: Literal["application/pdf"] = "application/pdf"
    data: str = Field(..., description="Base64-encoded document bytes")
    filename: str = "document.pdf"


ContentPart = Annotated[Union[TextPart, ImagePart, DocumentPart], Field(discriminator="type")]


class LLMMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str | list[ContentPart]
