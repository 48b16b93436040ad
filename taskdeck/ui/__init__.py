"""Textual user interface for taskdeck."""
