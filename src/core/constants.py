"""Core constants used across Estool modules.

This module centralizes wire-format and default values.
Keeping values here avoids magic literals in transfer logic.
"""

from __future__ import annotations

DEFAULT_WINDOW = 100
DEFAULT_BULK_SIZE = 500
DEFAULT_PARALLELISM = 4
DEFAULT_CHANNEL_CAPACITY = 10
DEFAULT_SCROLL_KEEPALIVE = "5m"
DEFAULT_RETRY_DELAY_SECONDS = 0.5
DEFAULT_LOG_LEVEL = "info"
CHANNEL_POLL_SECONDS = 0.1
SUPPORTED_LOG_LEVELS = ("debug", "info", "warning", "error")

BULK_SUCCESS_STATUSES = (200, 201)
BULK_CONFLICT_STATUS = 409
BULK_RETRY_STATUSES = (429, 503)

HTTP_SCHEMES = ("http://", "https://")
S3_SCHEME = "s3://"
NDJSON_CONTENT_TYPE = "application/x-ndjson"
JSON_CONTENT_TYPE = "application/json"
DUMP_ENCODING = "utf-8"
