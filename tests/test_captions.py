from __future__ import annotations

import uuid
from xml.etree.ElementTree import ParseError

import requests

from conftest import VIDEO_ID, FakeTranscriptApi, make_services, snippet
from transcript_crawler.pipeline.schema import PipelineJob, StageStatus, TranscriptionMethod
from transcript_crawler.pipeline.stages import fetch_captions
from transcript_crawler.transcription.captions import CaptionRetriever


KO_TRACK = [snippet("안녕하세요", 0.0, 2.5), snippet("반갑습니다", 2.5, 3.0)]
EN_TRACK = [snippet("Hello", 0.0, 1.0), snippet("world", 1.0, 1.0)]


def test_preferred_language_wins_without_further_attempts():
    api = FakeTranscriptApi({"ko": KO_TRACK, "en": EN_TRACK})

    outcome = CaptionRetriever(["ko", "en"], api=api).retrieve(VIDEO_ID)

    assert outcome.found
    assert outcome.language == "ko"
    assert [s.text for s in outcome.segments] == ["안녕하세요", "반갑습니다"]
    assert api.fetch_calls == [["ko"]]
    assert api.list_calls == 0


def test_falls_back_to_second_language():
    api = FakeTranscriptApi({"en": EN_TRACK})

    outcome = CaptionRetriever(["ko", "en"], api=api).retrieve(VIDEO_ID)

    assert outcome.language == "en"
    assert outcome.attempts == ["ko", "en"]
    assert api.list_calls == 0


def test_falls_back_to_default_track():
    api = FakeTranscriptApi({"ja": [snippet("こんにちは", 0.0, 1.5)]})

    outcome = CaptionRetriever(["ko", "en"], api=api).retrieve(VIDEO_ID)

    assert outcome.found
    assert outcome.language == "ja"
    assert outcome.attempts == ["ko", "en", "default"]
    assert outcome.segments[0].duration == 1.5


def test_no_tracks_is_an_outcome_not_an_error():
    api = FakeTranscriptApi({})

    outcome = CaptionRetriever(["ko", "en"], api=api).retrieve(VIDEO_ID)

    assert not outcome.found
    assert outcome.segments == []
    assert outcome.attempts == ["ko", "en", "default"]
    assert api.list_calls == 1


def test_blank_cues_are_dropped_and_an_all_blank_track_is_skipped():
    api = FakeTranscriptApi({"ko": [snippet("   ", 0.0, 1.0)], "en": [snippet(" Hi ", 0.0, 1.0), snippet("", 1.0, 1.0)]})

    outcome = CaptionRetriever(["ko", "en"], api=api).retrieve(VIDEO_ID)

    assert outcome.language == "en"
    assert [s.text for s in outcome.segments] == ["Hi"]


def test_transport_errors_move_to_the_next_attempt():
    class FlakyApi(FakeTranscriptApi):
        def fetch(self, video_id, languages=("en",)):
            if languages == ["ko"]:
                self.fetch_calls.append(list(languages))
                raise requests.ConnectionError("reset")
            return super().fetch(video_id, languages)

    outcome = CaptionRetriever(["ko", "en"], api=FlakyApi({"en": EN_TRACK})).retrieve(VIDEO_ID)

    assert outcome.found
    assert outcome.language == "en"


def test_stage_marks_native_captions():
    services = make_services(tracks={"ko": KO_TRACK})
    job = PipelineJob(mode="video", raw_input=VIDEO_ID, video_id=VIDEO_ID)

    job, result = fetch_captions.process(job, uuid.uuid4(), services)

    assert result.status is StageStatus.SUCCESS
    assert job.method is TranscriptionMethod.NATIVE_CAPTIONS
    assert job.caption_language == "ko"
    assert job.completed


def test_stage_reports_not_found_and_leaves_job_incomplete():
    services = make_services(tracks={})
    job = PipelineJob(mode="video", raw_input=VIDEO_ID, video_id=VIDEO_ID)

    job, result = fetch_captions.process(job, uuid.uuid4(), services)

    assert result.status is StageStatus.NOT_FOUND
    assert result.warnings
    assert not job.completed


def test_parser_errors_move_to_the_next_attempt():
    class BrokenXmlApi(FakeTranscriptApi):
        def fetch(self, video_id, languages=("en",)):
            if languages == ["ko"]:
                self.fetch_calls.append(list(languages))
                raise ParseError("no element found: line 1, column 0")
            return super().fetch(video_id, languages)

    api = BrokenXmlApi({"en": EN_TRACK})

    outcome = CaptionRetriever(["ko", "en"], api=api).retrieve(VIDEO_ID)

    assert outcome.found
    assert outcome.language == "en"
    assert api.fetch_calls == [["ko"], ["en"]]


def test_cues_keep_source_order_and_timing():
    track = [snippet("second", 4.0, 1.0), snippet("first", 1.25, 2.0), snippet("bad", -1.0, 1.0), snippet("late", 9.0, -0.5)]

    outcome = CaptionRetriever(["ko"], api=FakeTranscriptApi({"ko": track})).retrieve(VIDEO_ID)

    assert [(s.text, s.offset, s.duration) for s in outcome.segments] == [("second", 4.0, 1.0), ("first", 1.25, 2.0)]
