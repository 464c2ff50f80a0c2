"""Reporters for rendering unused exports in various output formats."""

from .text_reporter import to_text, summarize
from .json_reporter import to_json

__all__ = ["to_text", "summarize", "to_json"]
