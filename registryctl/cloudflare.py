"""A DNS provider backed by the Cloudflare v4 API."""

from __future__ import annotations

import json
import os
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

from .provider import DNSProvider, Record

ENDPOINT = "https://api.cloudflare.com/client/v4"


class CloudflareError(Exception):
    """A Cloudflare request failed or was refused."""


def _to_payload(record: Record) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    if record.id:
        payload["id"] = record.id
    payload["type"] = record.type
    payload["name"] = record.name
    if record.content:
        payload["content"] = record.content
    if record.priority is not None:
        payload["priority"] = record.priority
    if record.proxied is not None:
        payload["proxied"] = record.proxied
    if record.data:
        payload["data"] = record.data
    return payload


def _from_payload(item: dict[str, Any] | None) -> Record:
    item = item or {}
    return Record(
        id=item.get("id") or "",
        type=item.get("type") or "",
        name=item.get("name") or "",
        content=item.get("content") or "",
        priority=item.get("priority"),
        proxied=item.get("proxied"),
        data=item.get("data"),
    )


def _format_messages(messages: list[dict[str, Any]]) -> str:
    parts = (
        f"{{{message.get('code', 0)} {message.get('message', '')}}}"
        for message in messages
    )
    return "[" + " ".join(parts) + "]"


@dataclass
class CloudflareClient(DNSProvider):
    """Reads and changes the DNS records of one Cloudflare zone."""

    token: str = field(repr=False)
    zone_id: str
    endpoint: str = ENDPOINT
    timeout: float = 30.0

    @classmethod
    def from_env(cls) -> CloudflareClient:
        """Build a client from CLOUDFLARE_API_TOKEN and CLOUDFLARE_ZONE_ID."""
        token = os.environ.get("CLOUDFLARE_API_TOKEN", "")
        zone_id = os.environ.get("CLOUDFLARE_ZONE_ID", "")
        if not token:
            raise CloudflareError("CLOUDFLARE_API_TOKEN is required")
        if not zone_id:
            raise CloudflareError("CLOUDFLARE_ZONE_ID is required")
        return cls(token=token, zone_id=zone_id)

    @property
    def _records_path(self) -> str:
        return f"/zones/{quote(self.zone_id, safe='')}/dns_records"

    def _record_path(self, record_id: str) -> str:
        return f"{self._records_path}/{quote(record_id, safe='')}"

    def list_records(self) -> list[Record]:
        """Return every record of the zone, following pagination."""
        records: list[Record] = []
        page = 1
        while True:
            path = f"{self._records_path}?page={page}&per_page=100"
            envelope = self._request("GET", path)
            records.extend(_from_payload(item) for item in envelope.get("result") or [])
            total_pages = (envelope.get("result_info") or {}).get("total_pages") or 0
            if page >= total_pages or total_pages == 0:
                break
            page += 1
        return records

    def create_record(self, record: Record) -> Record:
        """Create a record and return it as stored."""
        envelope = self._request("POST", self._records_path, _to_payload(record))
        return _from_payload(envelope.get("result"))

    def update_record(self, record: Record) -> Record:
        """Replace the record with the same ID and return it as stored."""
        if not record.id:
            raise CloudflareError("record ID is required for update")
        envelope = self._request("PUT", self._record_path(record.id), _to_payload(record))
        return _from_payload(envelope.get("result"))

    def delete_record(self, record: Record) -> None:
        """Delete the record with the given ID."""
        if not record.id:
            raise CloudflareError("record ID is required for delete")
        self._request("DELETE", self._record_path(record.id))

    def _request(
        self, method: str, path: str, body: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        data = None if body is None else json.dumps(body).encode("utf-8")
        request = urllib.request.Request(
            self.endpoint + path,
            data=data,
            method=method,
            headers={
                "Authorization": f"Bearer {self.token}",
                "Content-Type": "application/json",
            },
        )
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                status, reason, raw = response.status, response.reason, response.read()
        except urllib.error.HTTPError as exc:
            status, reason, raw = exc.code, exc.reason, exc.read()
            exc.close()

        if not 200 <= status < 300:
            text = raw.decode("utf-8", errors="replace")
            raise CloudflareError(
                f"cloudflare {method} {path} failed: {status} {reason}: {text}"
            )
        try:
            envelope = json.loads(raw)
        except ValueError as exc:
            raise CloudflareError(
                f"cloudflare {method} {path}: invalid response: {exc}"
            ) from exc
        if not isinstance(envelope, dict):
            envelope = {}
        if envelope.get("success") is not True:
            raise CloudflareError(
                f"cloudflare {method} {path} failed: "
                f"{_format_messages(envelope.get('errors') or [])}"
            )
        return envelope