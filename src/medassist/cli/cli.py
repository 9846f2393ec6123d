"""Command-line interface for MedAssist."""

import asyncio
import logging

import click

from medassist.config import get_settings
from medassist.constants import MEDICAL_DISCLAIMER
from medassist.errors import RateLimited
from medassist.models.model_article import Specialty
from medassist.models.model_chat import ChatFailure, EmergencyShortCircuit
from medassist.services.assistant import MedicalAssistant

SPECIALTY_CHOICE = click.Choice([s.value for s in Specialty], case_sensitive=False)


@click.group()
@click.version_option(package_name="medassist")
def main():
    """MedAssist: medical chat and PubMed literature search."""
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("message")
@click.option("-c", "--context", "medical_context", help="Patient or clinical context")
@click.option("-s", "--specialty", type=SPECIALTY_CHOICE, help="Clinical specialty focus")
@click.option("-u", "--user", "user_id", default="cli", show_default=True, help="Rate-limit key")
def chat(message: str, medical_context: str | None, specialty: str | None, user_id: str):
    """Ask the medical assistant a question."""
    reply = asyncio.run(_chat(message, medical_context, specialty, user_id))

    if isinstance(reply, ChatFailure):
        click.echo(f"Error ({reply.outcome.value}): {reply.message}", err=True)
        raise SystemExit(1)

    click.echo(reply.text)
    if not isinstance(reply, EmergencyShortCircuit):
        click.echo(f"\n[{reply.provider_used.value}, {reply.latency_ms} ms]")
    click.echo(f"\n{MEDICAL_DISCLAIMER}")


@main.command()
@click.argument("query")
@click.option(
    "-n",
    "--max-results",
    default=10,
    show_default=True,
    help="Number of articles to return",
)
@click.option("-p", "--patient-context", help="Patient context used for ranking")
@click.option("-s", "--specialty", type=SPECIALTY_CHOICE, help="Clinical specialty focus")
@click.option("-u", "--user", "user_id", default="cli", show_default=True, help="Rate-limit key")
@click.option("-o", "--output", type=click.Path(), help="Output file path (JSON)")
def search(
    query: str,
    max_results: int,
    patient_context: str | None,
    specialty: str | None,
    user_id: str,
    output: str | None,
):
    """Search PubMed and rank the results."""
    click.echo(f"Searching PubMed for: {query}")
    try:
        results = asyncio.run(_search(query, max_results, patient_context, specialty, user_id))
    except RateLimited as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    click.echo(f"Top {len(results)} results:")
    for i, scored in enumerate(results, 1):
        article = scored.article
        click.echo(f"  {i}. {article.title} (score: {scored.relevance_score:.2f})")
        click.echo(f"     PMID {article.pmid} | {article.journal} | {article.publication_date or 'n.d.'}")
        if article.ai_summary:
            click.echo(f"     {article.ai_summary}")

    if output:
        import json
        from pathlib import Path

        Path(output).write_text(
            json.dumps(
                {"query": query, "articles": [s.model_dump(mode="json") for s in results]},
                indent=2,
            )
        )
        click.echo(f"\nResults saved to: {output}")


async def _chat(message, medical_context, specialty, user_id):
    async with MedicalAssistant.from_settings() as assistant:
        return await assistant.generate_chat_reply(
            message,
            medical_context=medical_context,
            specialty=Specialty(specialty.lower()) if specialty else None,
            user_id=user_id,
        )


async def _search(query, max_results, patient_context, specialty, user_id):
    async with MedicalAssistant.from_settings() as assistant:
        return await assistant.search_literature(
            query,
            max_results=max_results,
            patient_context=patient_context,
            specialty=Specialty(specialty.lower()) if specialty else None,
            user_id=user_id,
        )


if __name__ == "__main__":
    main()
