"""
Pydantic models for the chat flow.

A chat request becomes a PromptRequest (or an EmergencyShortCircuit), and the
router turns a PromptRequest into a GenerationResult. ChatFailure carries the
user-visible failure outcomes.
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict

from medassist.constants import MEDICAL_CONTEXT_LABEL
from medassist.models.model_provider import ProviderId


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class OutcomeCode(str, Enum):
    """Stable result codes the collaborator maps to user-facing messages."""

    OK = "ok"
    EMERGENCY = "emergency"
    RATE_LIMITED = "rate_limited"
    PROVIDERS_EXHAUSTED = "providers_exhausted"


class ChatTurn(BaseModel):
    """One prior message in a conversation."""

    model_config = ConfigDict(frozen=True)

    role: Role
    text: str


class PromptRequest(BaseModel):
    """Provider-agnostic prompt payload. The last turn is the current user message."""

    model_config = ConfigDict(frozen=True)

    system_prompt: str
    history: tuple[ChatTurn, ...] = ()
    medical_context: str | None = None
    max_tokens: int = 2000
    temperature: float = 0.3

    @property
    def system_message(self) -> str:
        """System prompt with the labeled medical context block appended."""
        if not self.medical_context:
            return self.system_prompt
        return f"{self.system_prompt}\n\n{MEDICAL_CONTEXT_LABEL} {self.medical_context}"

    def as_messages(self) -> list[dict[str, str]]:
        """OpenAI/Ollama style role/content messages, system message first."""
        messages = [{"role": "system", "content": self.system_message}]
        messages.extend(
            {"role": turn.role.value, "content": turn.text} for turn in self.history
        )
        return messages

    def as_text(self) -> str:
        """Flatten the request into a single prompt for completion-style models."""
        lines = [self.system_message, ""]
        for turn in self.history:
            speaker = "User" if turn.role is Role.USER else "Assistant"
            lines.append(f"{speaker}: {turn.text}")
        lines.append("Assistant:")
        return "\n".join(lines)


class GenerationResult(BaseModel):
    """Text produced by the first provider in the chain that succeeded."""

    model_config = ConfigDict(frozen=True)

    text: str
    tokens_used: int
    provider_used: ProviderId
    latency_ms: int
    outcome: Literal[OutcomeCode.OK] = OutcomeCode.OK


class EmergencyShortCircuit(BaseModel):
    """Canned emergency response returned instead of calling any provider."""

    model_config = ConfigDict(frozen=True)

    text: str
    matched_keyword: str
    outcome: Literal[OutcomeCode.EMERGENCY] = OutcomeCode.EMERGENCY


class ChatFailure(BaseModel):
    """A chat turn that produced no generated text."""

    model_config = ConfigDict(frozen=True)

    outcome: OutcomeCode
    message: str
    errors: dict[str, str] = {}
