"""Check registry objects for consistency and authorize changes to them."""

from __future__ import annotations

import ipaddress
import json
import os
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from . import registry
from .provider import record_key
from .registry import Domain, Maintainer, Record, Registry

_GITHUB_USERNAME_RE = re.compile(r"[A-Za-z0-9](?:[A-Za-z0-9-]{0,37}[A-Za-z0-9])?")
_LEADING_INT_RE = re.compile(r"[+-]?[0-9]+")
_DOMAIN_PREFIX = "registry/domain/"


@dataclass(frozen=True)
class ValidationIssue:
    """One problem found in a registry object."""

    file: str = ""
    line: int = 0
    text: str = ""
    msg: str = ""

    def __str__(self) -> str:
        if self.line > 0:
            quoted = json.dumps(self.text, ensure_ascii=False)
            return f"{self.file}:{self.line}: {self.msg}: {quoted}"
        if self.file:
            return f"{self.file}: {self.msg}"
        return self.msg


class ValidationError(ValueError):
    """Raised with every issue found; its message lists them one per line."""

    def __init__(self, issues: Iterable[ValidationIssue]) -> None:
        self.issues = list(issues)
        super().__init__("\n".join(str(issue) for issue in self.issues))

    def __str__(self) -> str:
        return "\n".join(str(issue) for issue in self.issues)


def _raise_if_any(issues: Iterable[ValidationIssue]) -> None:
    collected = list(issues)
    if collected:
        raise ValidationError(collected)


def _fail(msg: str) -> ValidationError:
    return ValidationError([ValidationIssue(msg=msg)])


def validate(reg: Registry | None) -> None:
    """Raise ValidationError if any maintainer or domain of the registry is invalid."""
    if reg is None:
        raise _fail("registry is nil")

    issues: list[ValidationIssue] = []
    for name in sorted(reg.maintainers):
        issues.extend(_maintainer_issues(reg.maintainers[name]))
    for name in sorted(reg.domains):
        issues.extend(_domain_issues(reg, reg.domains[name]))
    _raise_if_any(issues)


def authorize_github(reg: Registry | None, author: str) -> None:
    """Raise ValidationError unless the author may act for every domain's maintainer."""
    author = author.strip()
    if author == "":
        raise _fail("GitHub author is required for authorization")
    if reg is None:
        raise _fail("registry is nil")

    issues = []
    for name in sorted(reg.domains):
        domain = reg.domains[name]
        mntner = reg.maintainers.get(domain.maintainer)
        if mntner is None:
            continue
        if not _github_authorized(mntner, author):
            issues.append(
                ValidationIssue(
                    file=domain.file,
                    line=domain.maintainer_line,
                    msg=(
                        f"GitHub author {json.dumps(author, ensure_ascii=False)} is not "
                        f"authorized by maintainer "
                        f"{json.dumps(domain.maintainer, ensure_ascii=False)}"
                    ),
                )
            )
    _raise_if_any(issues)


def has_github_auth(reg: Registry | None, author: str) -> bool:
    """Return whether any maintainer lists the author as a GitHub auth."""
    if reg is None:
        return False
    return any(
        _github_authorized(reg.maintainers[name], author)
        for name in sorted(reg.maintainers)
    )


def authorize_domain_changes(
    base: Registry | None,
    head: Registry | None,
    changed_files: Iterable[str],
    author: str,
) -> None:
    """Raise ValidationError unless base maintainers authorize every changed domain."""
    author = author.strip()
    if author == "":
        raise _fail("GitHub author is required for authorization")
    if base is None or head is None:
        raise _fail("base and PR registries are required for authorization")

    quoted_author = json.dumps(author, ensure_ascii=False)
    issues = []
    for file in changed_files:
        domain_name = registry.normalize_name(file.removeprefix(_DOMAIN_PREFIX))
        base_domain = base.domains.get(domain_name)
        head_domain = head.domains.get(domain_name)

        if base_domain is not None and not _maintainer_authorized(
            base, base_domain.maintainer, author
        ):
            issues.append(
                ValidationIssue(
                    file=file,
                    msg=(
                        f"GitHub author {quoted_author} is not authorized to change "
                        f"existing domain {json.dumps(domain_name, ensure_ascii=False)}"
                    ),
                )
            )
        if head_domain is not None and not _maintainer_authorized(
            base, head_domain.maintainer, author
        ):
            issues.append(
                ValidationIssue(
                    file=file,
                    msg=(
                        f"GitHub author {quoted_author} is not authorized by base "
                        f"maintainer {json.dumps(head_domain.maintainer, ensure_ascii=False)}"
                    ),
                )
            )
    _raise_if_any(issues)


def _maintainer_issues(mntner: Maintainer | None) -> Iterator[ValidationIssue]:
    if mntner is None:
        yield ValidationIssue(msg="maintainer is nil")
        return
    if mntner.name.strip() == "":
        yield ValidationIssue(
            file=mntner.file, line=mntner.name_line, msg="mntner field is required"
        )
    if not mntner.auth:
        yield ValidationIssue(file=mntner.file, msg="at least one auth field is required")
    for auth in mntner.auth:
        text = "auth: " + auth.raw
        if auth.method == "github":
            if not _valid_github_username(auth.value):
                yield ValidationIssue(
                    mntner.file, auth.line, text, "invalid github auth username"
                )
        elif auth.method == "ssh-ed25519":
            if not auth.raw.startswith("ssh-ed25519 ") or auth.value.strip() == "":
                yield ValidationIssue(mntner.file, auth.line, text, "invalid ssh-ed25519 auth")
        else:
            yield ValidationIssue(mntner.file, auth.line, text, "unsupported auth method")


def _base_name(path: str) -> str:
    if path == "":
        return "."
    stripped = path.rstrip(os.sep)
    if stripped == "":
        return os.sep
    return os.path.basename(stripped)


def _domain_issues(reg: Registry, domain: Domain | None) -> Iterator[ValidationIssue]:
    if domain is None:
        yield ValidationIssue(msg="domain is nil")
        return

    if domain.name == "":
        yield ValidationIssue(
            file=domain.file, line=domain.name_line, msg="domain field is required"
        )
    elif not _valid_fqdn(domain.name):
        yield ValidationIssue(
            file=domain.file, line=domain.name_line, msg="domain must be a valid FQDN"
        )

    if domain.maintainer == "":
        yield ValidationIssue(
            file=domain.file, line=domain.maintainer_line, msg="mnt-by field is required"
        )
    elif reg.maintainers.get(domain.maintainer) is None:
        yield ValidationIssue(
            file=domain.file,
            line=domain.maintainer_line,
            msg="mnt-by references unknown maintainer " + domain.maintainer,
        )

    if domain.name and _base_name(domain.file) != domain.name:
        yield ValidationIssue(
            file=domain.file,
            msg=(
                "filename must match domain name "
                f"{json.dumps(domain.name, ensure_ascii=False)}"
            ),
        )

    yield from _record_issues(domain)


def _record_error(domain: Domain, record: Record, msg: str) -> ValidationIssue:
    return ValidationIssue(file=domain.file, line=record.line, text=record.raw, msg=msg)


def _parse_ip(text: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    if "%" in text:
        return None
    try:
        return ipaddress.ip_address(text)
    except ValueError:
        return None


def _is_ipv4(ip: ipaddress.IPv4Address | ipaddress.IPv6Address) -> bool:
    if isinstance(ip, ipaddress.IPv4Address):
        return True
    return ip.ipv4_mapped is not None


def _range_issues(
    domain: Domain, record: Record, value: int | None, field: str, low: int, high: int
) -> Iterator[ValidationIssue]:
    if value is None:
        yield _record_error(domain, record, f"{field} is required")
    elif not low <= value <= high:
        yield _record_error(domain, record, f"{field} must be between {low} and {high}")


def _record_issues(domain: Domain) -> Iterator[ValidationIssue]:
    by_name: dict[str, list[Record]] = {}
    keys: dict[str, Record] = {}

    for record in domain.records:
        name = registry.fqdn(domain.name, record.name)
        if not _valid_record_name(record.name, name):
            yield _record_error(domain, record, "record name must produce a valid FQDN")
        by_name.setdefault(name, []).append(record)

        key = record_key(name, record.type)
        existing = keys.get(key)
        if existing is not None:
            yield _record_error(
                domain,
                record,
                f"duplicate record key also defined on line {existing.line}",
            )
        else:
            keys[key] = record

        if record.proxied and not registry.is_proxyable(record.type):
            yield _record_error(
                domain, record, "proxied is only valid for A, AAAA, and CNAME records"
            )

        yield from _type_issues(domain, record, name)

    for name, records in by_name.items():
        yield from _combination_issues(domain, name, records)


def _type_issues(domain: Domain, record: Record, name: str) -> Iterator[ValidationIssue]:
    kind = record.type
    if kind == registry.TYPE_A:
        ip = _parse_ip(record.content)
        if ip is None or not _is_ipv4(ip):
            yield _record_error(domain, record, "A record content must be an IPv4 address")
    elif kind == registry.TYPE_AAAA:
        ip = _parse_ip(record.content)
        if ip is None or _is_ipv4(ip):
            yield _record_error(domain, record, "AAAA record content must be an IPv6 address")
    elif kind == registry.TYPE_CNAME:
        target = registry.target_name(domain.name, record.content)
        if _parse_ip(record.content) is not None:
            yield _record_error(
                domain, record, "CNAME target must be a domain name, not an IP address"
            )
        elif not _valid_fqdn(target):
            yield _record_error(domain, record, "CNAME target must be a valid FQDN")
        elif target == name:
            yield _record_error(domain, record, "CNAME target cannot reference itself")
    elif kind == registry.TYPE_TXT:
        if record.content == "":
            yield _record_error(domain, record, "TXT content is required")
    elif kind == registry.TYPE_MX:
        yield from _range_issues(domain, record, record.priority, "MX priority", 0, 65535)
        if not _valid_fqdn(record.target):
            yield _record_error(domain, record, "MX target must be a valid FQDN")
    elif kind == registry.TYPE_NS:
        if not _valid_fqdn(record.target):
            yield _record_error(domain, record, "NS target must be a valid FQDN")
    elif kind == registry.TYPE_SRV:
        yield from _range_issues(domain, record, record.priority, "SRV priority", 0, 65535)
        yield from _range_issues(domain, record, record.weight, "SRV weight", 0, 65535)
        yield from _range_issues(domain, record, record.port, "SRV port", 1, 65535)
        if not _valid_srv_name(record.name):
            yield _record_error(domain, record, "SRV name must start with _service._proto")
        if not _valid_fqdn(record.target):
            yield _record_error(domain, record, "SRV target must be a valid FQDN")
    elif kind == registry.TYPE_CAA:
        if not _valid_caa(record.content):
            yield _record_error(
                domain, record, "CAA content must contain flags, tag, and value"
            )
    else:
        yield _record_error(domain, record, "unsupported DNS record type")


def _combination_issues(
    domain: Domain, name: str, records: list[Record]
) -> Iterator[ValidationIssue]:
    cnames = [record for record in records if record.type == registry.TYPE_CNAME]
    has_non_cname = any(record.type != registry.TYPE_CNAME for record in records)
    has_ns = any(record.type == registry.TYPE_NS for record in records)
    has_non_ns = any(record.type != registry.TYPE_NS for record in records)

    if cnames and has_non_cname:
        yield _record_error(
            domain,
            cnames[-1],
            "CNAME cannot coexist with other record types at the same name",
        )
    if has_ns and has_non_ns and name != domain.name:
        yield ValidationIssue(
            file=domain.file,
            msg="NS records cannot be combined with other record types except at zone apex",
        )


def _github_authorized(mntner: Maintainer | None, author: str) -> bool:
    if mntner is None:
        return False
    folded = author.casefold()
    return any(
        auth.method == "github" and auth.value.casefold() == folded
        for auth in mntner.auth
    )


def _maintainer_authorized(reg: Registry, maintainer: str, author: str) -> bool:
    return _github_authorized(reg.maintainers.get(maintainer), author)


def _valid_github_username(username: str) -> bool:
    return _GITHUB_USERNAME_RE.fullmatch(username) is not None


def _valid_fqdn(name: str) -> bool:
    name = registry.normalize_name(name)
    if name == "" or len(name.encode("utf-8")) > 253 or ".." in name:
        return False
    labels = name.split(".")
    if len(labels) < 2:
        return False
    return all(_valid_dns_label(label, allow_underscore=False) for label in labels)


def _valid_record_name(name: str, full_name: str) -> bool:
    if name == "@":
        return _valid_fqdn(full_name)
    labels = registry.normalize_name(full_name).split(".")
    if len(labels) < 2:
        return False
    return all(_valid_dns_label(label, allow_underscore=True) for label in labels)


def _valid_dns_label(label: str, allow_underscore: bool) -> bool:
    if (
        label == ""
        or len(label.encode("utf-8")) > 63
        or label.startswith("-")
        or label.endswith("-")
    ):
        return False
    for char in label:
        if "a" <= char <= "z" or "0" <= char <= "9" or char == "-":
            continue
        if allow_underscore and char == "_":
            continue
        return False
    return True


def _valid_srv_name(name: str) -> bool:
    labels = registry.normalize_name(name).split(".")
    return len(labels) >= 2 and labels[0].startswith("_") and labels[1].startswith("_")


def _valid_caa(content: str) -> bool:
    fields = content.split()
    if len(fields) < 3:
        return False
    if fields[1] == "" or " " in fields[1] or "\t" in fields[1]:
        return False
    match = _LEADING_INT_RE.match(fields[0])
    if match is None:
        return False
    return 0 <= int(match.group()) <= 255