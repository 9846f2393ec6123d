"""Unit tests for the command-line interface."""

import json
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from medassist.cli.cli import main
from medassist.config import Settings
from medassist.constants import MEDICAL_DISCLAIMER
from medassist.errors import RateLimited
from medassist.models.model_article import ArticleRecord, ScoredArticle
from medassist.models.model_chat import ChatFailure, OutcomeCode


@pytest.fixture(autouse=True)
def offline_settings():
    settings = Settings(_env_file=None, ai_provider_order="mock")
    with patch("medassist.cli.cli.get_settings", return_value=settings), patch(
        "medassist.services.assistant.get_settings", return_value=settings
    ):
        yield settings


def test_version():
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output


def test_chat_with_mock_provider():
    result = CliRunner().invoke(main, ["chat", "How is diabetes managed?"])

    assert result.exit_code == 0, result.output
    assert "diabetes" in result.output.lower()
    assert "[mock," in result.output
    assert MEDICAL_DISCLAIMER in result.output


def test_chat_emergency():
    result = CliRunner().invoke(main, ["chat", "sudden chest pain"])

    assert result.exit_code == 0
    assert "EMERGENCY" in result.output
    assert "[mock," not in result.output


def test_chat_failure_exits_nonzero():
    failure = ChatFailure(outcome=OutcomeCode.PROVIDERS_EXHAUSTED, message="All providers exhausted")
    with patch(
        "medassist.services.assistant.MedicalAssistant.generate_chat_reply",
        new=AsyncMock(return_value=failure),
    ):
        result = CliRunner().invoke(main, ["chat", "question"])

    assert result.exit_code == 1
    assert "providers_exhausted" in result.output


def test_search_prints_and_saves(tmp_path):
    scored = [
        ScoredArticle(
            article=ArticleRecord(
                pmid="1",
                title="Metformin review",
                journal="Diabetes Care",
                publication_date="2023",
                ai_summary="A summary.",
            ),
            relevance_score=0.8,
        )
    ]
    output = tmp_path / "results.json"
    with patch(
        "medassist.services.assistant.MedicalAssistant.search_literature",
        new=AsyncMock(return_value=scored),
    ) as mock_search:
        result = CliRunner().invoke(
            main, ["search", "metformin", "-n", "3", "-s", "Cardiology", "-o", str(output)]
        )

    assert result.exit_code == 0, result.output
    assert "1. Metformin review (score: 0.80)" in result.output
    assert "A summary." in result.output
    assert json.loads(output.read_text())["articles"][0]["article"]["pmid"] == "1"
    kwargs = mock_search.call_args.kwargs
    assert kwargs["max_results"] == 3
    assert kwargs["specialty"].value == "cardiology"


def test_search_rate_limited():
    with patch(
        "medassist.services.assistant.MedicalAssistant.search_literature",
        new=AsyncMock(side_effect=RateLimited("cli")),
    ):
        result = CliRunner().invoke(main, ["search", "metformin"])

    assert result.exit_code == 1
    assert "Rate limit exceeded" in result.output
