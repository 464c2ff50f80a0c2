"""Data model for module exports and their usage."""
