"""Read maintainer and domain objects from registry files."""

from __future__ import annotations

import json
import os
from typing import TextIO

from . import registry
from .registry import Auth, Domain, Maintainer, Registry, Record


class ParseError(ValueError):
    """A line of a registry file that cannot be read."""

    def __init__(self, file: str, line: int, text: str, msg: str) -> None:
        super().__init__(file, line, text, msg)
        self.file = file
        self.line = line
        self.text = text
        self.msg = msg

    def __str__(self) -> str:
        quoted = json.dumps(self.text, ensure_ascii=False)
        return f"{self.file}:{self.line}: {self.msg}: {quoted}"


def _lines(filename: str, stream: TextIO):
    """Yield (line number, raw line) pairs, splitting on newlines only."""
    try:
        text = stream.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise OSError(f"read {filename}: {exc}") from exc
    parts = text.split("\n")
    if parts[-1] == "":
        parts.pop()
    for number, raw in enumerate(parts, start=1):
        yield number, raw.removesuffix("\r")


def _header(line: str) -> tuple[str, str] | None:
    key, sep, value = line.partition(":")
    if not sep:
        return None
    key = key.strip().lower()
    if key == "" or " " in key or "\t" in key:
        return None
    return key, value.strip()


def _parse_auth(value: str) -> Auth:
    if value.startswith("github:"):
        return Auth(method="github", value=value[len("github:"):], raw=value)
    fields = value.split()
    if not fields:
        return Auth(raw=value)
    return Auth(method=fields[0], value=" ".join(fields[1:]), raw=value)


def _split_fields(line: str) -> list[str]:
    """Split a record line on blanks, honouring double quotes and escapes."""
    fields: list[str] = []
    current: list[str] = []
    in_quote = escaped = had_token = False

    for char in line:
        if escaped:
            current.append(char)
            escaped = False
            had_token = True
            continue
        if in_quote:
            if char == "\\":
                escaped = True
            elif char == '"':
                in_quote = False
                had_token = True
            else:
                current.append(char)
                had_token = True
            continue
        if char in " \t":
            if had_token:
                fields.append("".join(current))
                current.clear()
                had_token = False
        elif char == '"':
            in_quote = True
            had_token = True
        else:
            current.append(char)
            had_token = True

    if escaped:
        raise ValueError("unfinished escape sequence")
    if in_quote:
        raise ValueError("unterminated quoted string")
    if had_token:
        fields.append("".join(current))
    return fields


def _integer(filename: str, line_no: int, raw: str, value: str, field: str) -> int:
    parsed = registry.parse_int(value)
    if parsed is None:
        raise ParseError(filename, line_no, raw, f"{field} must be an integer")
    return parsed


def _parse_record(zone: str, filename: str, line_no: int, raw: str) -> Record:
    try:
        fields = _split_fields(raw)
    except ValueError as exc:
        raise ParseError(filename, line_no, raw, str(exc)) from None
    if len(fields) < 3:
        raise ParseError(
            filename, line_no, raw, "record must contain name, type, and value"
        )

    record = Record(
        name=registry.normalize_name(fields[0]),
        type=fields[1].upper(),
        line=line_no,
        raw=raw,
    )
    values = fields[2:]
    if (
        registry.is_proxyable(record.type)
        and values
        and values[-1].lower() == "proxied"
    ):
        record.proxied = True
        values = values[:-1]
    if record.type not in registry.SUPPORTED_RECORD_TYPES:
        raise ParseError(
            filename, line_no, raw, f"unsupported DNS record type {record.type}"
        )

    if record.type in (
        registry.TYPE_A,
        registry.TYPE_AAAA,
        registry.TYPE_CNAME,
        registry.TYPE_TXT,
        registry.TYPE_CAA,
    ):
        if not values:
            raise ParseError(filename, line_no, raw, "record value is required")
        record.content = " ".join(values)
    elif record.type == registry.TYPE_NS:
        if len(values) != 1:
            raise ParseError(filename, line_no, raw, "NS record must contain target")
        record.target = registry.target_name(zone, values[0])
        record.content = record.target
    elif record.type == registry.TYPE_MX:
        if len(values) != 2:
            raise ParseError(
                filename, line_no, raw, "MX record must contain priority and target"
            )
        record.priority = _integer(filename, line_no, raw, values[0], "MX priority")
        record.target = registry.target_name(zone, values[1])
        record.content = f"{values[0]} {record.target}"
    elif record.type == registry.TYPE_SRV:
        if len(values) != 4:
            raise ParseError(
                filename,
                line_no,
                raw,
                "SRV record must contain priority, weight, port, and target",
            )
        record.priority = _integer(filename, line_no, raw, values[0], "SRV priority")
        record.weight = _integer(filename, line_no, raw, values[1], "SRV weight")
        record.port = _integer(filename, line_no, raw, values[2], "SRV port")
        record.target = registry.target_name(zone, values[3])
        record.content = " ".join([values[0], values[1], values[2], record.target])

    return record


def parse_maintainer(filename: str, stream: TextIO) -> Maintainer:
    """Read a maintainer object from a text stream."""
    mntner = Maintainer(file=filename)
    for line_no, raw in _lines(filename, stream):
        line = raw.strip()
        if line == "" or line.startswith("#"):
            continue

        parsed = _header(line)
        if parsed is None:
            raise ParseError(filename, line_no, raw, "expected maintainer field")
        key, value = parsed

        if key == "mntner":
            if mntner.name:
                raise ParseError(filename, line_no, raw, "duplicate mntner field")
            mntner.name = value
            mntner.name_line = line_no
        elif key == "descr":
            mntner.descr.append(value)
        elif key == "auth":
            auth = _parse_auth(value)
            auth.line = line_no
            mntner.auth.append(auth)
        else:
            raise ParseError(
                filename, line_no, raw, f"unknown maintainer field {key}"
            )
    return mntner


def parse_domain(filename: str, stream: TextIO) -> Domain:
    """Read a domain object, headers first and then records, from a text stream."""
    domain = Domain(file=filename)
    seen_record = False

    for line_no, raw in _lines(filename, stream):
        line = raw.strip()
        if line == "" or line.startswith("#"):
            continue

        parsed = _header(line)
        if parsed is not None:
            if seen_record:
                raise ParseError(
                    filename, line_no, raw, "domain headers must appear before records"
                )
            key, value = parsed
            if key == "domain":
                if domain.name:
                    raise ParseError(filename, line_no, raw, "duplicate domain field")
                domain.name = registry.normalize_name(value)
                domain.name_line = line_no
            elif key == "descr":
                domain.descr.append(value)
            elif key == "mnt-by":
                if domain.maintainer:
                    raise ParseError(filename, line_no, raw, "duplicate mnt-by field")
                domain.maintainer = value
                domain.maintainer_line = line_no
            else:
                raise ParseError(
                    filename, line_no, raw, f"unknown domain field {key}"
                )
            continue

        seen_record = True
        domain.records.append(_parse_record(domain.name, filename, line_no, raw))
    return domain


def _object_files(directory: str) -> list[str]:
    """Return the paths of the object files in a directory, sorted by name."""
    try:
        with os.scandir(directory) as scan:
            entries = sorted(scan, key=lambda entry: entry.name)
    except FileNotFoundError:
        return []

    paths = []
    for entry in entries:
        if entry.name.startswith("."):
            continue
        path = os.path.join(directory, entry.name)
        if entry.is_symlink():
            raise ValueError(f"{path}: symlink registry objects are not supported")
        if entry.is_dir(follow_symlinks=False):
            raise ValueError(
                f"{path}: nested registry object directories are not supported"
            )
        paths.append(path)
    return paths


def parse_registry(root: str | os.PathLike[str]) -> Registry:
    """Read every maintainer and domain object under root/registry."""
    reg = Registry()
    base = os.path.join(os.fspath(root), "registry")

    for path in _object_files(os.path.join(base, "mntner")):
        with open(path, encoding="utf-8", newline="") as stream:
            mntner = parse_maintainer(path, stream)
        if mntner.name:
            reg.maintainers[mntner.name] = mntner

    for path in _object_files(os.path.join(base, "domain")):
        with open(path, encoding="utf-8", newline="") as stream:
            domain = parse_domain(path, stream)
        if domain.name:
            reg.domains[domain.name] = domain

    return reg