"""Telegram voice message transcription bot backed by Gemini."""

__version__ = "0.1.0"
