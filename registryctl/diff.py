"""Compute and describe the changes that turn current DNS records into desired ones."""

from __future__ import annotations

import dataclasses
import enum
from dataclasses import dataclass

from .provider import Record


class Action(str, enum.Enum):
    """What a change does to a record."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass
class Change:
    """One change to a record, keyed by name and type."""

    action: Action
    key: str
    current: Record | None = None
    desired: Record | None = None


def _normalize(record: Record) -> Record:
    return dataclasses.replace(
        record,
        type=record.type.upper(),
        name=record.name.removesuffix(".").lower(),
    )


def _equal_records(a: Record, b: Record) -> bool:
    return dataclasses.replace(_normalize(a), id="") == dataclasses.replace(
        _normalize(b), id=""
    )


def generate(current: list[Record], desired: list[Record]) -> list[Change]:
    """Return the changes, ordered by key, that make current match desired."""
    current_by_key = {record.key(): _normalize(record) for record in current}
    desired_by_key = {record.key(): _normalize(record) for record in desired}

    changes: list[Change] = []
    for key in sorted(current_by_key.keys() | desired_by_key.keys()):
        current_record = current_by_key.get(key)
        desired_record = desired_by_key.get(key)
        if current_record is None and desired_record is not None:
            changes.append(Change(Action.CREATE, key, desired=desired_record))
        elif current_record is not None and desired_record is None:
            changes.append(Change(Action.DELETE, key, current=current_record))
        elif (
            current_record is not None
            and desired_record is not None
            and not _equal_records(current_record, desired_record)
        ):
            changes.append(
                Change(
                    Action.UPDATE,
                    key,
                    current=current_record,
                    desired=dataclasses.replace(desired_record, id=current_record.id),
                )
            )
    return changes


def format_change(change: Change) -> str:
    """Return a one-line description of a change."""
    if change.action == Action.CREATE and change.desired is not None:
        desired = change.desired
        return f"+ create {desired.type} {desired.name} -> {desired.display_content()}"
    if change.action == Action.UPDATE and change.desired is not None:
        return f"~ update {change.desired.type} {change.desired.name}"
    if change.action == Action.DELETE and change.current is not None:
        return f"- delete {change.current.type} {change.current.name}"
    return f"? {change.key}"


def format_changes(changes: list[Change]) -> str:
    """Return the descriptions of the changes, one per line."""
    return "\n".join(format_change(change) for change in changes)