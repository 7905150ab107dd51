"""Streaming transfer pipeline.

This package moves index documents from a source to a sink through a
bounded batch channel: paginated extraction on one side, concurrent
idempotent bulk ingestion on the other.
"""
