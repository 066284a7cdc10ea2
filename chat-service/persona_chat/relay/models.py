"""Data models used by the relay.

This module defines:
- The transport-agnostic invocation shapes (`RelayEvent`, `RelayResponse`).
- The normalized inbound chat request, a tagged union of `TextForm` and
  `MultipartForm` decided once from the Content-Type header.
- The provider-bound chat-completion payload and its content parts.
- The `{userMessage, aiResponse}` envelope returned on the image path.
- The hosted speech request.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["system", "user", "assistant"]
HostedVoice = Literal["nova", "shimmer", "echo", "onyx", "fable", "alloy"]
SpeechModel = Literal["tts-1", "tts-1-hd"]


class RelayEvent(BaseModel):  # pylint: disable=too-few-public-methods
    """A single inbound HTTP invocation, as handed over by the host.

    Attributes
    ----------
    method : str
        HTTP verb, upper-case.
    headers : Dict[str, str]
        Request headers with lower-cased names.
    body : bytes
        Raw request body.
    is_base64_encoded : bool
        True when the host delivered the body base64-encoded.
    """

    method: str
    headers: Dict[str, str] = Field(default_factory=dict)
    body: bytes = b""
    is_base64_encoded: bool = False

    @property
    def content_type(self) -> str:
        """Return the Content-Type header, or an empty string."""
        return self.headers.get("content-type", "")


class RelayResponse(BaseModel):  # pylint: disable=too-few-public-methods
    """Outcome of one relay invocation.

    Exactly one of `body` (JSON-serializable) or `content` (raw bytes) is
    meaningful, selected by `media_type`.
    """

    status_code: int = 200
    body: Any = None
    content: Optional[bytes] = None
    media_type: str = "application/json"

    @classmethod
    def error(cls, status_code: int, message: str) -> "RelayResponse":
        """Build a flat `{"error": message}` response."""
        return cls(status_code=status_code, body={"error": message})

    @property
    def is_binary(self) -> bool:
        """True when the response carries raw bytes instead of JSON."""
        return self.content is not None


class TextForm(BaseModel):  # pylint: disable=too-few-public-methods
    """JSON-mode chat request.

    Messages are kept as plain mappings so they reach the provider unchanged.
    """

    kind: Literal["text"] = "text"
    messages: List[Dict[str, Any]]
    system_prompt: Optional[str] = None


class ImageUpload(BaseModel):  # pylint: disable=too-few-public-methods
    """The single file part of a multipart request."""

    data: bytes
    mime_type: str
    filename: Optional[str] = None


class MultipartForm(BaseModel):  # pylint: disable=too-few-public-methods
    """Multipart chat request carrying exactly one image."""

    kind: Literal["multipart"] = "multipart"
    content: Optional[str] = None
    system_prompt: Optional[str] = None
    image: ImageUpload


ChatRequest = Union[TextForm, MultipartForm]


class TextPart(BaseModel):
    """Text content part."""

    type: Literal["text"] = "text"
    text: str


class ImageURL(BaseModel):
    """Image reference, here always a data URI."""

    url: str


class ImagePart(BaseModel):
    """Image content part."""

    type: Literal["image_url"] = "image_url"
    image_url: ImageURL


ContentPart = Union[TextPart, ImagePart]


class CompletionMessage(BaseModel):
    """A provider-bound message whose content is text or a list of parts."""

    model_config = ConfigDict(extra="allow")

    role: Role
    content: Union[str, List[ContentPart]]


class ChatCompletionPayload(BaseModel):  # pylint: disable=too-few-public-methods
    """Provider-bound chat-completion request body.

    Attributes
    ----------
    model : str
        Upstream model name.
    messages : List[Any]
        Ordered messages; a synthesized system prompt, if any, comes first.
    temperature : Optional[float]
        Sampling temperature (text path only).
    max_tokens : Optional[int]
        Output cap (image path only).
    """

    model: str
    messages: List[Any]
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None

    def to_wire(self) -> Dict[str, Any]:
        """Serialize for the upstream call, dropping unset options."""
        return self.model_dump(mode="json", exclude_none=True)


class UserMessageEcho(BaseModel):
    """The user's side of an image exchange, echoed back for rendering."""

    id: str
    content: str
    sender: Literal["user"] = "user"
    created_at: datetime
    image_url: Optional[str] = None


class RelayEnvelope(BaseModel):
    """Response shape of the image path."""

    userMessage: UserMessageEcho  # pylint: disable=invalid-name
    aiResponse: str  # pylint: disable=invalid-name


class SpeechRequest(BaseModel):  # pylint: disable=too-few-public-methods
    """Hosted text-to-speech request accepted by `/tts`."""

    text: str = ""
    voice: Optional[HostedVoice] = None
    model: Optional[SpeechModel] = None
