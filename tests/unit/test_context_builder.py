"""Unit tests for ConversationContextBuilder."""

import pytest

from medassist.constants import EMERGENCY_RESPONSE, MEDICAL_SYSTEM_PROMPT
from medassist.models.model_article import Specialty
from medassist.models.model_chat import (
    ChatTurn,
    EmergencyShortCircuit,
    OutcomeCode,
    PromptRequest,
    Role,
)
from medassist.services.context_builder import ConversationContextBuilder, find_emergency_keyword


def _history(n: int) -> tuple[ChatTurn, ...]:
    return tuple(
        ChatTurn(role=Role.USER if i % 2 == 0 else Role.ASSISTANT, text=f"turn {i}")
        for i in range(n)
    )


class TestFindEmergencyKeyword:
    def test_case_insensitive_substring(self):
        assert find_emergency_keyword("Sudden CHEST PAIN at rest", ["chest pain"]) == "chest pain"

    def test_no_match(self):
        assert find_emergency_keyword("mild headache", ["chest pain", "stroke"]) is None

    def test_substring_inside_longer_word_matches(self):
        assert find_emergency_keyword("history of seizures", ["seizure"]) == "seizure"

    def test_blank_keywords_ignored(self):
        assert find_emergency_keyword("anything", ["", "  "]) is None


class TestConversationContextBuilder:
    def test_emergency_short_circuit(self):
        builder = ConversationContextBuilder()

        result = builder.build("I have severe chest pain and difficulty breathing")

        assert isinstance(result, EmergencyShortCircuit)
        assert result.text == EMERGENCY_RESPONSE
        assert result.outcome is OutcomeCode.EMERGENCY
        assert result.matched_keyword == "chest pain"

    def test_builds_prompt_with_message_last(self):
        builder = ConversationContextBuilder()

        result = builder.build("What is metformin?", _history(2))

        assert isinstance(result, PromptRequest)
        assert result.system_prompt == MEDICAL_SYSTEM_PROMPT
        assert result.history[-1] == ChatTurn(role=Role.USER, text="What is metformin?")
        assert len(result.history) == 3

    @pytest.mark.parametrize("turns,expected", [(0, 0), (3, 3), (6, 6), (20, 6)])
    def test_history_truncated_to_recent_turns(self, turns, expected):
        builder = ConversationContextBuilder(history_turns=6)

        result = builder.build("next", _history(turns))

        assert len(result.history) == expected + 1
        if turns:
            assert result.history[-2].text == f"turn {turns - 1}"

    def test_specialty_addendum(self):
        builder = ConversationContextBuilder(specialty_prompts={"cardiology": "Focus on the heart."})

        result = builder.build("Question", specialty=Specialty.CARDIOLOGY)

        assert result.system_prompt.startswith(MEDICAL_SYSTEM_PROMPT)
        assert "SPECIALTY FOCUS (CARDIOLOGY):\nFocus on the heart." in result.system_prompt

    def test_unknown_specialty_uses_base_prompt(self):
        builder = ConversationContextBuilder(specialty_prompts={})

        result = builder.build("Question", specialty=Specialty.NEUROLOGY)

        assert result.system_prompt == MEDICAL_SYSTEM_PROMPT

    def test_medical_context_is_labeled(self):
        builder = ConversationContextBuilder()

        result = builder.build("Question", medical_context="  65yo male, CKD stage 3  ")

        assert result.medical_context == "65yo male, CKD stage 3"
        assert result.system_message.endswith("Medical context: 65yo male, CKD stage 3")

    def test_blank_medical_context_dropped(self):
        builder = ConversationContextBuilder()

        result = builder.build("Question", medical_context="   ")

        assert result.medical_context is None
        assert result.system_message == result.system_prompt

    def test_generation_parameters_passed_through(self):
        builder = ConversationContextBuilder(max_tokens=123, temperature=0.7)

        result = builder.build("Question")

        assert result.max_tokens == 123
        assert result.temperature == 0.7

    def test_custom_keywords(self):
        builder = ConversationContextBuilder(emergency_keywords=["overdose"], emergency_response="CALL")

        assert builder.build("chest pain").__class__ is PromptRequest
        emergency = builder.build("possible OVERDOSE")
        assert emergency.text == "CALL"
