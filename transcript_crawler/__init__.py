"""transcript-crawler: caption-first transcript extraction with speech-recognition fallback."""

__version__ = "0.1.0"
