"""
TrackRecord CLI

Command-line interface for TrackRecord.
"""

from .trackrecord_cli import cli, main

__all__ = ["cli", "main"]
