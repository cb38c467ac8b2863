"""Ingestion layer.

This package contains the terminal interface and the helpers that turn
raw terminal responses into canonical records and snapshots.
"""

__all__: list[str] = []
