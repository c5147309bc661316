# transcript_crawler/transcription/audio.py
"""
Audio payload handling: bounded download of a resolved URL and upload checks.
Single responsibility: get audio bytes into memory without ever exceeding the ceiling.
"""

from __future__ import annotations

from pathlib import PurePath
from typing import Optional

import requests

from transcript_crawler.pipeline.errors import (
    AudioTooLarge,
    EmptyUpload,
    TranscriptionFailed,
    UnsupportedAudioFormat,
)
from transcript_crawler.pipeline.schema import UploadedAudio


CHUNK_SIZE = 64 * 1024

ALLOWED_CONTENT_TYPES = ("audio/mpeg", "audio/mp3", "audio/wav", "audio/m4a", "audio/mp4", "audio/x-m4a")
ALLOWED_EXTENSIONS = (".mp3", ".m4a", ".wav")


def download_audio(url: str, max_bytes: int, session: Optional[requests.Session] = None, timeout: float = 15.0) -> bytes:
    """
    Stream the audio at url into memory.

    Raises AudioTooLarge as soon as the declared or streamed size passes max_bytes.
    """
    session = session or requests.Session()
    try:
        with session.get(url, stream=True, timeout=timeout) as response:
            if not response.ok:
                raise TranscriptionFailed(f"audio download answered HTTP {response.status_code}")

            declared = response.headers.get("Content-Length")
            if declared and declared.isdigit() and int(declared) > max_bytes:
                raise AudioTooLarge(f"declared audio size {declared} bytes exceeds {max_bytes}")

            buffer = bytearray()
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if not chunk:
                    continue
                buffer.extend(chunk)
                if len(buffer) > max_bytes:
                    raise AudioTooLarge(f"audio stream exceeded {max_bytes} bytes")
    except requests.RequestException as exc:
        raise TranscriptionFailed(f"audio download failed: {exc}") from exc

    if not buffer:
        raise TranscriptionFailed("audio download returned an empty body")
    return bytes(buffer)


def validate_upload(upload: Optional[UploadedAudio], max_bytes: int) -> UploadedAudio:
    """Reject missing, oversized or non-audio uploads."""
    if upload is None or upload.size == 0:
        raise EmptyUpload("no upload payload")

    if upload.size > max_bytes:
        raise AudioTooLarge(f"upload of {upload.size} bytes exceeds {max_bytes}")

    content_type = (upload.content_type or "").lower()
    suffix = PurePath(upload.filename).suffix.lower()
    if not (any(t in content_type for t in ALLOWED_CONTENT_TYPES) or suffix in ALLOWED_EXTENSIONS):
        raise UnsupportedAudioFormat(f"content type {content_type!r}, extension {suffix!r}")

    return upload
