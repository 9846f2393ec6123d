"""Assembles provider-agnostic prompts for the chat flow."""

from typing import Iterable, Mapping, Sequence

from medassist.constants import (
    EMERGENCY_KEYWORDS,
    EMERGENCY_RESPONSE,
    MEDICAL_SYSTEM_PROMPT,
    SPECIALTY_PROMPTS,
)
from medassist.models.model_article import Specialty
from medassist.models.model_chat import (
    ChatTurn,
    EmergencyShortCircuit,
    PromptRequest,
    Role,
)


def find_emergency_keyword(message: str, keywords: Iterable[str]) -> str | None:
    """Return the first keyword contained in ``message`` (case-insensitive), if any.

    Plain substring matching: "seizure" also matches "seizures" and any text
    that merely mentions a keyword.
    """
    lowered = message.lower()
    for keyword in keywords:
        keyword = keyword.strip().lower()
        if keyword and keyword in lowered:
            return keyword
    return None


class ConversationContextBuilder:
    """Pure function object: no I/O, no state beyond its configuration."""

    def __init__(
        self,
        system_prompt: str = MEDICAL_SYSTEM_PROMPT,
        specialty_prompts: Mapping[str, str] = SPECIALTY_PROMPTS,
        emergency_keywords: Sequence[str] = tuple(EMERGENCY_KEYWORDS.split(",")),
        emergency_response: str = EMERGENCY_RESPONSE,
        history_turns: int = 6,
        max_tokens: int = 2000,
        temperature: float = 0.3,
    ):
        self.system_prompt = system_prompt
        self.specialty_prompts = dict(specialty_prompts)
        self.emergency_keywords = tuple(emergency_keywords)
        self.emergency_response = emergency_response
        self.history_turns = history_turns
        self.max_tokens = max_tokens
        self.temperature = temperature

    def system_prompt_for(self, specialty: Specialty | None) -> str:
        if specialty is None:
            return self.system_prompt
        addendum = self.specialty_prompts.get(specialty.value)
        if not addendum:
            return self.system_prompt
        return f"{self.system_prompt}\n\nSPECIALTY FOCUS ({specialty.value.upper()}):\n{addendum}"

    def build(
        self,
        user_message: str,
        history: Sequence[ChatTurn] = (),
        medical_context: str | None = None,
        specialty: Specialty | None = None,
    ) -> PromptRequest | EmergencyShortCircuit:
        keyword = find_emergency_keyword(user_message, self.emergency_keywords)
        if keyword is not None:
            return EmergencyShortCircuit(text=self.emergency_response, matched_keyword=keyword)

        recent = tuple(history)[-self.history_turns :] if self.history_turns > 0 else ()
        turns = recent + (ChatTurn(role=Role.USER, text=user_message),)

        context = medical_context.strip() if medical_context else None
        return PromptRequest(
            system_prompt=self.system_prompt_for(specialty),
            history=turns,
            medical_context=context or None,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
