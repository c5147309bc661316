from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from typer.testing import CliRunner

from conftest import VIDEO_ID, make_settings
from transcript_crawler.cli import transcript as cli
from transcript_crawler.pipeline.runner import PipelineRun
from transcript_crawler.pipeline.schema import Diagnostics, HistoryRecord, PipelineResponse, PipelineState


runner = CliRunner()

SUCCESS_BODY = {
    "videoInfo": {
        "videoId": VIDEO_ID,
        "title": "Never Gonna Give You Up",
        "channelName": "Rick Astley",
        "thumbnail": f"https://img.youtube.com/vi/{VIDEO_ID}/maxresdefault.jpg",
    },
    "transcript": [
        {"text": "We're no strangers to love", "offset": 18.0, "duration": 3.5},
        {"text": "You know the rules", "offset": 75.4, "duration": 2.0},
    ],
    "fullText": "We're no strangers to love You know the rules",
    "usedSpeechRecognition": False,
}


def make_run(status_code=200, body=None, state=PipelineState.DONE):
    return PipelineRun(
        run_id=uuid.uuid4(),
        state=state,
        response=PipelineResponse(status_code=status_code, body=body if body is not None else SUCCESS_BODY),
        diagnostics=Diagnostics(final_state=state),
    )


@pytest.fixture
def calls(monkeypatch):
    seen = []
    monkeypatch.setattr(cli, "_services", lambda: None)

    def fake_run(video_id, services=None):
        seen.append(video_id)
        return make_run()

    monkeypatch.setattr(cli, "run_transcript", fake_run)
    return seen


@pytest.mark.parametrize("seconds, expected", [(0, "0:00"), (5.9, "0:05"), (75.4, "1:15"), (3600, "60:00")])
def test_format_timestamp(seconds, expected):
    assert cli.format_timestamp(seconds) == expected


def test_fetch_prints_full_text(calls):
    result = runner.invoke(cli.app, ["fetch", f"https://youtu.be/{VIDEO_ID}"])

    assert result.exit_code == 0
    assert calls == [VIDEO_ID]
    assert "Never Gonna Give You Up" in result.output
    assert "We're no strangers to love You know the rules" in result.output


def test_fetch_timestamps_link_into_the_video(calls):
    result = runner.invoke(cli.app, ["fetch", VIDEO_ID, "--timestamps"])

    assert result.exit_code == 0
    assert f"[1:15] You know the rules  (https://youtube.com/watch?v={VIDEO_ID}&t=75s)" in result.output


def test_fetch_writes_json(calls, tmp_path):
    out = tmp_path / "out" / "transcript.json"

    result = runner.invoke(cli.app, ["fetch", VIDEO_ID, "--out", str(out)])

    assert result.exit_code == 0
    assert json.loads(out.read_text(encoding="utf-8")) == SUCCESS_BODY


def test_fetch_rejects_non_youtube_links(calls):
    result = runner.invoke(cli.app, ["fetch", "https://vimeo.com/123"])

    assert result.exit_code == 1
    assert calls == []


def test_pipeline_failure_exits_non_zero(monkeypatch):
    monkeypatch.setattr(cli, "_services", lambda: None)
    monkeypatch.setattr(
        cli,
        "run_transcript",
        lambda video_id, services=None: make_run(404, {"error": "Video not found. Please check the URL."}, PipelineState.NOT_FOUND),
    )

    result = runner.invoke(cli.app, ["fetch", VIDEO_ID])

    assert result.exit_code == 1


def test_upload_reads_the_file(monkeypatch, tmp_path):
    audio = tmp_path / "lecture.mp3"
    audio.write_bytes(b"ID3" + b"\0" * 32)
    seen = []
    body = {key: value for key, value in SUCCESS_BODY.items() if key != "videoInfo"}
    body["usedSpeechRecognition"] = True

    def fake_upload(upload, services=None):
        seen.append(upload)
        return make_run(body=body)

    monkeypatch.setattr(cli, "_services", lambda: None)
    monkeypatch.setattr(cli, "run_upload", fake_upload)

    result = runner.invoke(cli.app, ["upload", str(audio)])

    assert result.exit_code == 0
    assert seen[0].filename == "lecture.mp3"
    assert seen[0].content_type == "audio/mpeg"
    assert seen[0].size == 35
    assert "speech recognition" in result.output


def test_history_not_configured(monkeypatch):
    monkeypatch.setattr(cli, "_services", lambda: type("Services", (), {"history": None})())

    result = runner.invoke(cli.app, ["history"])

    assert result.exit_code == 0
    assert "not configured" in result.output


def test_history_lists_records_with_configured_limit(monkeypatch):
    limits = []

    class History:
        def recent(self, limit):
            limits.append(limit)
            return [
                HistoryRecord(
                    video_id=VIDEO_ID,
                    title="Never Gonna Give You Up",
                    thumbnail="t",
                    created_at=datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc),
                )
            ]

    services = SimpleNamespace(history=History(), settings=make_settings(history_limit=7))
    monkeypatch.setattr(cli, "_services", lambda: services)

    result = runner.invoke(cli.app, ["history"])

    assert result.exit_code == 0
    assert limits == [7]
    assert f"2026-03-01 09:30  {VIDEO_ID}  Never Gonna Give You Up" in result.output
