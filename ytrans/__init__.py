"""Transcribe YouTube videos with whisper.cpp and store the transcripts."""

__version__ = "0.1.0"
