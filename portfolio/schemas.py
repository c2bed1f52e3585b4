"""Request/response models — the contract between server and clients."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class PitchRequest(BaseModel):
    """Incoming pitch request. The wire name is ``businessProblem``."""

    model_config = ConfigDict(populate_by_name=True)

    business_problem: str = Field(alias="businessProblem")


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class AssistantRequest(BaseModel):
    """A question about the portfolio plus the prior conversation."""

    question: str
    history: list[ChatTurn] = []


class ContactRequest(BaseModel):
    name: str = ""
    email: str = ""
    message: str = ""


class StreamFragment(BaseModel):
    """A single ``data:`` line in a streamed response.

    ``content`` is always present and is appended to the accumulated text.
    ``error`` is set only when generation failed after the stream started;
    the server ends the stream right after such a fragment.
    """

    content: str
    error: str | None = None


class MessageResponse(BaseModel):
    """Envelope for non-streaming responses, success or failure."""

    success: bool
    message: str


class UserSummary(BaseModel):
    name: str
    title: str
    experience: str
