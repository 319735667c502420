"""Registry objects (maintainers, domains, records) and their desired DNS state."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from . import provider

TYPE_A = "A"
TYPE_AAAA = "AAAA"
TYPE_CNAME = "CNAME"
TYPE_TXT = "TXT"
TYPE_MX = "MX"
TYPE_NS = "NS"
TYPE_SRV = "SRV"
TYPE_CAA = "CAA"

SUPPORTED_RECORD_TYPES = frozenset(
    {TYPE_A, TYPE_AAAA, TYPE_CNAME, TYPE_TXT, TYPE_MX, TYPE_NS, TYPE_SRV, TYPE_CAA}
)

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def normalize_name(name: str) -> str:
    """Trim whitespace and one trailing dot, and lower-case the name."""
    return name.strip().removesuffix(".").lower()


def fqdn(zone: str, name: str) -> str:
    """Return the fully qualified name of a record name within a zone."""
    zone = normalize_name(zone)
    name = normalize_name(name)
    if name in ("", "@"):
        return zone
    if name == zone or name.endswith("." + zone):
        return name
    return f"{name}.{zone}"


def target_name(zone: str, name: str) -> str:
    """Resolve a record target: '@' is the zone, a bare label is inside the zone."""
    name = normalize_name(name)
    if name == "@":
        return normalize_name(zone)
    if name == "":
        return name
    if "." not in name:
        return f"{name}.{normalize_name(zone)}"
    return name


def is_proxyable(record_type: str) -> bool:
    """Return whether records of this type may be proxied."""
    return record_type.upper() in (TYPE_A, TYPE_AAAA, TYPE_CNAME)


def parse_int(value: str) -> int | None:
    """Parse a plain decimal integer with an optional sign, or return None."""
    if not _INTEGER_RE.fullmatch(value):
        return None
    number = int(value)
    if not _INT64_MIN <= number <= _INT64_MAX:
        return None
    return number


@dataclass
class Auth:
    """One auth line of a maintainer."""

    method: str = ""
    value: str = ""
    raw: str = ""
    line: int = 0


@dataclass
class Maintainer:
    """A maintainer object."""

    name: str = ""
    name_line: int = 0
    descr: list[str] = field(default_factory=list)
    auth: list[Auth] = field(default_factory=list)
    file: str = ""


@dataclass
class Record:
    """A record line of a domain object."""

    name: str = ""
    type: str = ""
    content: str = ""
    priority: int | None = None
    weight: int | None = None
    port: int | None = None
    target: str = ""
    proxied: bool = False
    line: int = 0
    raw: str = ""


def _srv_data(
    name: str, priority: int, weight: int, port: int, target: str
) -> dict[str, Any]:
    labels = normalize_name(name).split(".")
    data: dict[str, Any] = {
        "priority": priority,
        "weight": weight,
        "port": port,
        "target": target,
    }
    if len(labels) >= 3 and labels[0].startswith("_") and labels[1].startswith("_"):
        data["service"] = labels[0]
        data["proto"] = labels[1]
        data["name"] = ".".join(labels[2:])
    return data


def _caa_data(content: str) -> dict[str, Any] | None:
    fields = content.split()
    if len(fields) < 3:
        return None
    flags = parse_int(fields[0])
    if flags is None:
        return None
    return {"flags": flags, "tag": fields[1], "value": " ".join(fields[2:])}


@dataclass
class Domain:
    """A domain object with its records."""

    name: str = ""
    name_line: int = 0
    descr: list[str] = field(default_factory=list)
    maintainer: str = ""
    maintainer_line: int = 0
    records: list[Record] = field(default_factory=list)
    file: str = ""

    def desired_records(self) -> list[provider.Record]:
        """Return the provider records this domain asks for.

        Raises ValueError when an SRV record lacks its numeric fields.
        """
        return [self._desired_record(record) for record in self.records]

    def _desired_record(self, record: Record) -> provider.Record:
        record_type = record.type.upper()
        converted = provider.Record(type=record_type, name=fqdn(self.name, record.name))

        if record_type in (TYPE_A, TYPE_AAAA):
            converted.content = record.content
            converted.proxied = record.proxied
        elif record_type == TYPE_CNAME:
            converted.content = target_name(self.name, record.content)
            converted.proxied = record.proxied
        elif record_type == TYPE_MX:
            converted.content = target_name(self.name, record.target)
            converted.priority = record.priority
        elif record_type == TYPE_NS:
            converted.content = target_name(self.name, record.target)
        elif record_type == TYPE_SRV:
            if record.priority is None or record.weight is None or record.port is None:
                raise ValueError(f"SRV record {record.name} is missing numeric fields")
            target = target_name(self.name, record.target)
            converted.content = (
                f"{record.priority} {record.weight} {record.port} {target}"
            )
            converted.data = _srv_data(
                converted.name, record.priority, record.weight, record.port, target
            )
        elif record_type == TYPE_CAA:
            converted.content = record.content
            converted.data = _caa_data(record.content)
        else:
            converted.content = record.content
        return converted


@dataclass
class Registry:
    """All maintainers and domains, keyed by name."""

    maintainers: dict[str, Maintainer] = field(default_factory=dict)
    domains: dict[str, Domain] = field(default_factory=dict)

    def desired_records(self) -> list[provider.Record]:
        """Return the provider records of every domain, in domain-name order."""
        records: list[provider.Record] = []
        for name in sorted(self.domains):
            records.extend(self.domains[name].desired_records())
        return records