"""Bring a DNS provider's records in line with the desired records."""

from __future__ import annotations

from .diff import Action, Change, generate
from .provider import DNSProvider, Record


class SyncError(Exception):
    """A change failed to apply; carries every change that was planned."""

    def __init__(self, message: str, changes: list[Change]) -> None:
        super().__init__(message)
        self.changes = changes


def apply(dns_provider: DNSProvider, desired: list[Record]) -> list[Change]:
    """Apply the changes that make the provider match desired, and return them.

    Errors from listing records propagate unchanged; a failure while applying
    a change raises SyncError holding the planned changes.
    """
    current = dns_provider.list_records()
    changes = generate(current, desired)
    for change in changes:
        try:
            if change.action == Action.CREATE and change.desired is not None:
                dns_provider.create_record(change.desired)
            elif change.action == Action.UPDATE and change.desired is not None:
                dns_provider.update_record(change.desired)
            elif change.action == Action.DELETE and change.current is not None:
                dns_provider.delete_record(change.current)
        except Exception as exc:
            raise SyncError(str(exc), changes) from exc
    return changes