#!/usr/bin/env python3
"""
CLI tool for local story generation.

Runs the same generation session as the web API without starting a server,
and reports which API keys are loaded.
"""

import json
import logging
import os
import sys
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

import click  # noqa: E402
from pydantic import ValidationError as PydanticValidationError  # noqa: E402

from src.longstory.config import load_config  # noqa: E402
from src.longstory.credentials import CredentialPool  # noqa: E402
from src.longstory.models import GenerateRequest  # noqa: E402
from src.longstory.providers.factory import create_executor  # noqa: E402
from src.longstory.session import GenerationSession  # noqa: E402
from src.longstory.utils.errors import APIError  # noqa: E402
from src.longstory.utils.llm_constants import DEFAULT_TARGET_LENGTH  # noqa: E402

logging.basicConfig(
    level=logging.DEBUG if os.getenv('FLASK_ENV') == 'development' else logging.WARNING,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


def build_session(body: GenerateRequest, pool: CredentialPool) -> GenerationSession:
    """
    Create a generation session from a validated request.

    Args:
        body: Validated generation request
        pool: Credential pool to draw keys from

    Returns:
        GenerationSession ready to run or stream
    """
    config = load_config()
    return GenerationSession(
        params=body.to_story_params(),
        target_length=body.target_length,
        executor=create_executor(pool, config=config),
        context_chars=config["CONTEXT_CHARS"],
    )


def _write_story(script: str, output: Optional[str]) -> None:
    if output:
        with open(output, 'w', encoding='utf-8') as f:
            f.write(script)
        click.echo(f"✓ Story written to '{output}'", err=True)
    else:
        click.echo(script)


def _stream(session: GenerationSession, output: Optional[str]) -> None:
    for event in session.stream():
        kind = event["type"]
        if kind == "init":
            click.echo(
                f"Generating {event['targetLength']:,} chars in {event['totalChunks']} parts",
                err=True,
            )
        elif kind == "progress":
            click.echo(
                f"  Part {event['chunk']}/{event['total']} ({event['progressPercent']}%)...",
                err=True,
            )
        elif kind == "chunk":
            click.echo(f"  ✓ Part {event['chunk']}: {event['chars']:,} chars", err=True)
        elif kind == "error":
            click.echo(f"Error in part {event['chunk']}: {event['error']}", err=True)
            sys.exit(1)
        elif kind == "complete":
            click.echo(
                f"Total: {event['totalChars']:,} chars, {event['totalWords']:,} words "
                f"(achieved: {event['achieved']})",
                err=True,
            )
            _write_story(event["fullStory"], output)


@click.group()
def cli():
    """CLI tool for long-form story generation."""
    pass


@cli.command()
@click.option('--title', required=True, help='Story title')
@click.option('--niche', required=True, help='Genre label (e.g. horror, revenge)')
@click.option('--tone', required=True, help='Tone label (e.g. dark, suspenseful)')
@click.option('--plot', required=True, help='Plot summary')
@click.option('--style-file', required=True, type=click.Path(exists=True, dir_okay=False),
              help='File containing the style example (at least 500 characters)')
@click.option('--extra', 'extra_instructions', default=None, help='Extra instructions')
@click.option('--characters', 'character_details', default=None, help='Character notes')
@click.option('--target-length', default=DEFAULT_TARGET_LENGTH, type=int,
              help=f'Target length in characters (default: {DEFAULT_TARGET_LENGTH})')
@click.option('--stream', 'stream_progress', is_flag=True, help='Print progress for each part')
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Write the story to this file')
def generate(
    title: str,
    niche: str,
    tone: str,
    plot: str,
    style_file: str,
    extra_instructions: Optional[str],
    character_details: Optional[str],
    target_length: int,
    stream_progress: bool,
    output: Optional[str],
) -> None:
    """
    Generate a story and print it (or write it with --output).

    Raises:
        SystemExit: Exits with code 1 on invalid input or a generation error.
    """
    with open(style_file, 'r', encoding='utf-8') as f:
        style_example = f.read()

    try:
        body = GenerateRequest(
            title=title,
            niche=niche,
            tone=tone,
            plot=plot,
            style_example=style_example,
            extra_instructions=extra_instructions,
            character_details=character_details,
            target_length=target_length,
        )
    except PydanticValidationError as e:
        for error in e.errors():
            field_name = ".".join(str(part) for part in error["loc"])
            click.echo(f"Error: {field_name}: {error['msg']}", err=True)
        sys.exit(1)

    try:
        session = build_session(body, CredentialPool.load())
        if stream_progress:
            _stream(session, output)
        else:
            result = session.run()
            click.echo(
                f"Total: {result.total_chars:,} chars in {result.chunks} parts "
                f"(achieved: {result.achieved})",
                err=True,
            )
            _write_story(result.script, output)
    except APIError as e:
        click.echo(f"Error [{e.error_code}]: {e.message}", err=True)
        sys.exit(1)


@cli.command()
@click.option('--format', 'output_format', type=click.Choice(['table', 'json']),
              default='table', help='Output format (default: table)')
def keys(output_format: str) -> None:
    """
    Show loaded API keys and their usage (never the key values).
    """
    status = CredentialPool.load().status()

    if output_format == 'json':
        click.echo(json.dumps(status, indent=2))
        return

    if not status["total"]:
        click.echo("No API keys configured. Set GEMINI_KEY_1..GEMINI_KEY_10.")
        sys.exit(1)

    click.echo(f"\n{'Key':<10} {'Uses':<8}")
    click.echo("-" * 20)
    for name, uses in status["usage"].items():
        click.echo(f"{name:<10} {uses:<8}")
    click.echo(f"\nTotal: {status['total']} keys ({status['available']} available)")


if __name__ == '__main__':
    cli()
