"""Provider-neutral DNS records and the interface a DNS provider implements."""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import Any


def record_key(name: str, record_type: str) -> str:
    """Return the identity key of a record: lower-case name and upper-case type."""
    return f"{name.removesuffix('.').lower()} {record_type.upper()}"


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


@dataclass
class Record:
    """A DNS record as a provider sees it."""

    id: str = ""
    type: str = ""
    name: str = ""
    content: str = ""
    priority: int | None = None
    proxied: bool | None = None
    data: dict[str, Any] | None = None

    def key(self) -> str:
        """Return the identity key of this record."""
        return record_key(self.name, self.type)

    def display_content(self) -> str:
        """Return the content, or the structured data as sorted key=value pairs."""
        if self.content:
            return self.content
        if not self.data:
            return ""
        return ",".join(
            f"{key}={_format_value(self.data[key])}" for key in sorted(self.data)
        )


class DNSProvider(abc.ABC):
    """A DNS service whose records can be listed and changed."""

    @abc.abstractmethod
    def list_records(self) -> list[Record]:
        """Return every record currently held by the provider."""

    @abc.abstractmethod
    def create_record(self, record: Record) -> Record:
        """Create a record and return it as stored."""

    @abc.abstractmethod
    def update_record(self, record: Record) -> Record:
        """Replace the record with the same ID and return it as stored."""

    @abc.abstractmethod
    def delete_record(self, record: Record) -> None:
        """Delete the record with the given ID."""