"""Command line entry point: transcribe YouTube videos and read stored transcripts."""

import contextlib
import sys
from enum import Enum
from pathlib import Path
from typing import Annotated, Optional

import typer

from ytrans.cancellation import cancel_on_signals
from ytrans.config import Config
from ytrans.exceptions import TranscriberError
from ytrans.repository import TranscriptionsRepository
from ytrans.transcriber import TranscriptionPipeline
from ytrans.writers.json_writer import write_json
from ytrans.writers.srt_writer import write_srt
from ytrans.writers.txt_writer import write_txt

app = typer.Typer(
    name="ytrans",
    help="Transcribe YouTube videos",
    no_args_is_help=True,
)


class OutputFormat(str, Enum):
    txt = "txt"
    json = "json"
    srt = "srt"


def _fail(message: str) -> None:
    print(f"✗ {message}", file=sys.stderr)
    raise typer.Exit(code=1)


def _require_link(link: str) -> str:
    link = link.strip()
    if not link:
        _fail("please provide a YouTube link")
    return link


def _open_repository(config: Config) -> TranscriptionsRepository:
    repository = TranscriptionsRepository.from_config(config)
    print("✓ Connected to database")
    return repository


@app.callback()
def main_callback(ctx: typer.Context):
    """Load and validate configuration once for every command."""
    config = Config.from_env()
    try:
        config.validate()
    except TranscriberError as e:
        _fail(f"Configuration Error: {e}")
    ctx.obj = config


@app.command(name="get", help="Get transcriptions by YouTube link")
def get_command(
    ctx: typer.Context,
    link: Annotated[str, typer.Argument(help="YouTube video URL")] = "",
    output_format: Annotated[
        OutputFormat,
        typer.Option("--format", help="Output format"),
    ] = OutputFormat.txt,
    output: Annotated[
        Optional[Path],
        typer.Option(help="Write to this file instead of standard output"),
    ] = None,
):
    link = _require_link(link)
    try:
        repository = _open_repository(ctx.obj)
        try:
            records = repository.get_transcriptions_by_link(link)
        finally:
            repository.close()
    except TranscriberError as e:
        _fail(str(e))

    if not records:
        print(f"⚠ No transcriptions stored for {link}", file=sys.stderr)

    with (open(output, 'w', encoding='utf-8') if output else contextlib.nullcontext(sys.stdout)) as f:
        if output_format is OutputFormat.json:
            write_json(link, records, f)
        elif output_format is OutputFormat.srt:
            write_srt(records, f)
        else:
            write_txt(records, f)


@app.command(name="link", help="Transcribe a single YouTube link")
def link_command(
    ctx: typer.Context,
    link: Annotated[str, typer.Argument(help="YouTube video URL")] = "",
):
    link = _require_link(link)
    config = ctx.obj
    cancel = cancel_on_signals()
    try:
        repository = _open_repository(config)
        try:
            records = TranscriptionPipeline(config, repository, cancel=cancel).run(link)
        finally:
            repository.close()
    except TranscriberError as e:
        _fail(f"Error: {e}")

    print()
    print("=" * 60)
    print(f"✓ Transcription complete: {len(records)} segments")
    print("=" * 60)


def main():
    app()


if __name__ == "__main__":
    main()
