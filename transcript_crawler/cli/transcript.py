# transcript_crawler/cli/transcript.py
"""
CLI entrypoint for transcript extraction.

Thin adapter, no business logic.
Responsibilities:
- Parse arguments and turn a link into a video ID
- Invoke the pipeline
- Print the transcript / write the JSON response
- Provide clear user feedback

All logging is structured JSON from the core pipeline.
"""

from __future__ import annotations

import json
import mimetypes
from pathlib import Path
from typing import Optional

import typer

from transcript_crawler.config import Settings
from transcript_crawler.logging_core.logger import configure_logging
from transcript_crawler.pipeline.runner import PipelineRun, run_transcript, run_upload
from transcript_crawler.pipeline.schema import UploadedAudio
from transcript_crawler.pipeline.services import PipelineServices
from transcript_crawler.pipeline.stages.validate_input import extract_video_id


app = typer.Typer(
    name="transcript-crawler",
    help="Transcript crawler: captions first, speech recognition as fallback",
    no_args_is_help=True,
)


def format_timestamp(seconds: float) -> str:
    """m:ss, minutes unbounded."""
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"


def _services() -> PipelineServices:
    settings = Settings()
    configure_logging(settings.log_level)
    return PipelineServices.from_settings(settings)


def _report(run: PipelineRun, out: Optional[Path], timestamps: bool) -> None:
    if out is not None:
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(json.dumps(run.response.body, ensure_ascii=False, indent=2), encoding="utf-8")

    if not run.response.ok:
        typer.echo(typer.style("✗ Transcript failed", fg=typer.colors.RED, bold=True), err=True)
        typer.echo(f"Error ({run.response.status_code}): {run.response.body['error']}", err=True)
        raise typer.Exit(code=1)

    body = run.response.body
    video = body.get("videoInfo")
    if video:
        typer.echo(typer.style(video["title"], bold=True))
        typer.echo(f"{video['channelName']}  ·  https://youtube.com/watch?v={video['videoId']}")
    method = "speech recognition" if body["usedSpeechRecognition"] else "captions"
    typer.echo(typer.style(f"✓ {len(body['transcript'])} segments via {method}", fg=typer.colors.GREEN))
    typer.echo("")

    if timestamps:
        for segment in body["transcript"]:
            line = f"[{format_timestamp(segment['offset'])}] {segment['text']}"
            if video:
                line += f"  (https://youtube.com/watch?v={video['videoId']}&t={int(segment['offset'])}s)"
            typer.echo(line)
    else:
        typer.echo(body["fullText"])

    if out is not None:
        typer.echo("")
        typer.echo(f"Response written to: {out}")


@app.command()
def fetch(
    url: str = typer.Argument(..., help="YouTube URL or 11-character video ID"),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Write the JSON response to this file"),
    timestamps: bool = typer.Option(False, "--timestamps", "-t", help="Print one timestamped line per segment"),
) -> None:
    """
    Extract the transcript of a YouTube video.
    """
    video_id = extract_video_id(url)
    if video_id is None:
        typer.echo("Please enter a valid YouTube URL.", err=True)
        raise typer.Exit(code=1)

    _report(run_transcript(video_id, services=_services()), out, timestamps)


@app.command()
def upload(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="MP3, M4A or WAV file"),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Write the JSON response to this file"),
    timestamps: bool = typer.Option(False, "--timestamps", "-t", help="Print one timestamped line per segment"),
) -> None:
    """
    Transcribe a local audio file with speech recognition.
    """
    content_type = mimetypes.guess_type(file.name)[0] or ""
    audio = UploadedAudio(filename=file.name, content_type=content_type, data=file.read_bytes())
    _report(run_upload(audio, services=_services()), out, timestamps)


@app.command()
def history(
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1, max=200, help="Number of records to show (default HISTORY_LIMIT)"),
) -> None:
    """
    Show recently transcribed videos, newest first.
    """
    services = _services()
    if services.history is None:
        typer.echo("History is not configured (set HISTORY_DATABASE_URL).")
        return

    records = services.history.recent(limit or services.settings.history_limit)
    if not records:
        typer.echo("No history yet.")
        return

    for record in records:
        typer.echo(f"{record.created_at:%Y-%m-%d %H:%M}  {record.video_id}  {record.title}")


if __name__ == "__main__":
    app()


# High-Level Intent
# cli/transcript.py is the thin adapter standing in for the web page:
# link → video ID → pipeline → printed transcript (or JSON file).
# Exit code 1 whenever the pipeline response is not a success.

# Edge Cases
# Not a YouTube link → message + exit 1, pipeline never invoked.
# Pipeline failure → error message with status code on stderr.
# History not configured → informational message, exit 0.
