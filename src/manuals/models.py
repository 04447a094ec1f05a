"""Wire entities returned by the Manuals API."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _Entity(BaseModel):
    """Immutable value decoded from a response body; unknown fields are ignored."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def nulls_to_defaults(cls, data: Any) -> Any:
        # The service encodes empty values as null; only optional fields keep it.
        if not isinstance(data, dict):
            return data
        fields = cls.model_fields
        return {
            key: value
            for key, value in data.items()
            if value is not None or key not in fields or fields[key].default is None
        }


class SearchResult(_Entity):
    """Represents a search hit."""
    device_id: str = ""
    name: str = ""
    domain: str = ""
    type: str = ""
    path: str = ""
    score: float = 0.0
    snippet: str = ""


class SearchResponse(_Entity):
    """Response from the search endpoint."""
    results: list[SearchResult] = Field(default_factory=list)
    total: int = 0
    query: str = ""


class Device(_Entity):
    """Represents a device with associated documentation."""
    id: str = ""
    domain: str = ""
    type: str = ""
    name: str = ""
    path: str = ""
    content: str | None = None
    metadata: dict[str, Any] | None = None
    indexed_at: str = ""


class Document(_Entity):
    """Represents a downloadable file attached to a device."""
    id: str = ""
    device_id: str = ""
    path: str = ""
    filename: str = ""
    mime_type: str = ""
    size_bytes: int = 0
    checksum: str = ""
    indexed_at: str = ""


class DevicesResponse(_Entity):
    """A page of devices."""
    data: list[Device] = Field(default_factory=list)
    total: int = 0
    limit: int = 0
    offset: int = 0


class DocumentsResponse(_Entity):
    """A page of documents."""
    data: list[Document] = Field(default_factory=list)
    total: int = 0
    limit: int = 0
    offset: int = 0
