"""Index metadata model.

This module parses the single-index metadata blob exchanged between
endpoints, applies shard/replica overrides, and renders it back to JSON.
Everything except aliases and the two count fields is passed through.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping

from core.errors import EstoolMetadataError


@dataclass(frozen=True)
class IndexMetadata:
    """Metadata of one index.

    Attributes:
        index_name: Top-level key of the metadata blob.
        aliases: Alias definitions.
        mappings: Collection name to mapping schema.
        settings: Settings block, normally ``{"index": {...}}``.
        extra_sections: Other top-level sections (e.g. warmers), untouched.
    """

    index_name: str
    aliases: Mapping[str, Any]
    mappings: Mapping[str, Any]
    settings: Mapping[str, Any]
    extra_sections: Mapping[str, Any] = field(default_factory=dict)

    @property
    def collections(self) -> tuple[str, ...]:
        """Collection names in mapping order."""
        return tuple(self.mappings)

    def without_aliases(self) -> "IndexMetadata":
        """Return a copy whose alias block is empty."""
        return IndexMetadata(
            index_name=self.index_name,
            aliases={},
            mappings=self.mappings,
            settings=self.settings,
            extra_sections=self.extra_sections,
        )

    def prepare_for_write(
        self,
        replicas: int | None = None,
        shards: int | None = None,
    ) -> "IndexMetadata":
        """Clear aliases and apply optional replica/shard overrides.

        Args:
            replicas: Replica count to force, or None to keep the source's.
            shards: Shard count to force, or None to keep the source's.

        Returns:
            Metadata ready to be written to a destination.
        """
        settings = _copy_json(self.settings)
        if replicas is not None or shards is not None:
            index_settings = settings.setdefault("index", {})
            if not isinstance(index_settings, dict):
                raise EstoolMetadataError(
                    f"Invalid settings for index '{self.index_name}': "
                    "'settings.index' must be an object to apply overrides."
                )
            if replicas is not None:
                index_settings["number_of_replicas"] = str(replicas)
            if shards is not None:
                index_settings["number_of_shards"] = str(shards)
        return IndexMetadata(
            index_name=self.index_name,
            aliases={},
            mappings=self.mappings,
            settings=settings,
            extra_sections=self.extra_sections,
        )

    def index_body(self) -> dict[str, Any]:
        """Render the body used to create the index, without its name."""
        return {
            **_copy_json(self.extra_sections),
            "aliases": _copy_json(self.aliases),
            "mappings": _copy_json(self.mappings),
            "settings": _copy_json(self.settings),
        }

    def to_blob(self) -> str:
        """Render the single-line metadata blob keyed by index name."""
        return json.dumps({self.index_name: self.index_body()}, separators=(",", ":"))


def parse_index_metadata(blob: str | bytes) -> IndexMetadata:
    """Parse a metadata blob holding exactly one index.

    Args:
        blob: JSON object keyed by index name.

    Returns:
        Parsed metadata.

    Raises:
        EstoolMetadataError: If the blob is not JSON, holds zero or several
            indexes, or has non-object sections.
    """
    try:
        payload = json.loads(blob)
    except (json.JSONDecodeError, UnicodeDecodeError) as error:
        raise EstoolMetadataError(
            f"Failed to parse index metadata: {error}. "
            "Expected a JSON object keyed by index name."
        ) from error
    if not isinstance(payload, dict) or len(payload) != 1:
        found = sorted(payload) if isinstance(payload, dict) else type(payload).__name__
        raise EstoolMetadataError(
            f"Index metadata must describe exactly one index, found: {found}. "
            "Point the transfer at a single concrete index, not a pattern or alias."
        )
    index_name, body = next(iter(payload.items()))
    if not isinstance(body, dict):
        raise EstoolMetadataError(f"Metadata for index '{index_name}' must be a JSON object.")
    sections = {
        name: _section(index_name, body, name) for name in ("aliases", "mappings", "settings")
    }
    extra_sections = {
        key: value for key, value in body.items() if key not in ("aliases", "mappings", "settings")
    }
    return IndexMetadata(
        index_name=index_name,
        aliases=sections["aliases"],
        mappings=sections["mappings"],
        settings=sections["settings"],
        extra_sections=extra_sections,
    )


def _section(index_name: str, body: dict[str, Any], name: str) -> dict[str, Any]:
    """Read one object section of an index body, defaulting to empty."""
    value = body.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise EstoolMetadataError(
            f"Invalid '{name}' section for index '{index_name}': expected a JSON object."
        )
    return value


def _copy_json(value: Any) -> Any:
    """Deep-copy JSON-compatible data."""
    return json.loads(json.dumps(value))
