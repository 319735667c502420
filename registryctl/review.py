"""Decide whether a registry change may be merged without human review."""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass, field

from .parser import parse_registry
from .registry import Registry
from .validator import (
    ValidationError,
    authorize_domain_changes,
    has_github_auth,
    validate,
)

_DOMAIN_PREFIX = "registry/domain/"
_CHUNK_SIZE = 64 * 1024


@dataclass
class ReviewResult:
    """The outcome of checking a change between two registry trees."""

    registered: bool = False
    requires_review: bool = False
    auto_merge: bool = False
    changed_files: list[str] = field(default_factory=list)
    reasons: list[str] = field(default_factory=list)


def _wrap(prefix: str, exc: Exception) -> Exception:
    message = f"{prefix}: {exc}"
    if isinstance(exc, OSError):
        return OSError(message)
    return ValueError(message)


def _load(root: str | os.PathLike[str], label: str) -> Registry:
    try:
        reg = parse_registry(root)
    except (OSError, ValueError) as exc:
        raise _wrap(f"parse {label} registry", exc) from exc
    try:
        validate(reg)
    except ValidationError as exc:
        raise _wrap(f"validate {label} registry", exc) from exc
    return reg


def check(
    base_root: str | os.PathLike[str],
    head_root: str | os.PathLike[str],
    author: str,
) -> ReviewResult:
    """Compare two registry trees and decide whether the author's change auto-merges.

    Raises when either registry cannot be read or is invalid, and raises
    ValidationError when an otherwise mergeable change is not authorized.
    """
    base_registry = _load(base_root, "base")
    head_registry = _load(head_root, "PR")

    files = changed_files(base_root, head_root)
    result = ReviewResult(
        changed_files=files,
        registered=has_github_auth(base_registry, author),
    )

    if not files:
        result.requires_review = True
        result.reasons.append("PR has no file changes")
    if not result.registered:
        result.requires_review = True
        result.reasons.append("GitHub author is not registered in the base registry")

    domain_files = []
    for file in files:
        if _is_direct_domain_file(file):
            domain_files.append(file)
            continue
        result.requires_review = True
        result.reasons.append(
            f"{file} is not an auto-mergeable domain registry file"
        )

    if not result.requires_review:
        authorize_domain_changes(base_registry, head_registry, domain_files, author)
        result.auto_merge = True

    return result


def changed_files(
    base_root: str | os.PathLike[str], head_root: str | os.PathLike[str]
) -> list[str]:
    """Return the sorted slash-separated paths whose content differs between trees."""
    base_files = _hash_tree(base_root)
    head_files = _hash_tree(head_root)
    return sorted(
        path
        for path in base_files.keys() | head_files.keys()
        if base_files.get(path) != head_files.get(path)
    )


def _hash_tree(root: str | os.PathLike[str]) -> dict[str, str]:
    root = os.fspath(root)
    os.stat(root)
    files: dict[str, str] = {}
    if os.path.isdir(root) and not os.path.islink(root):
        if os.path.basename(os.path.normpath(root)) != ".git":
            _walk(root, root, files)
    elif os.path.islink(root):
        files["."] = _hash_string("symlink:" + os.readlink(root))
    else:
        files["."] = _hash_file(root)
    return files


def _walk(root: str, directory: str, files: dict[str, str]) -> None:
    with os.scandir(directory) as scan:
        entries = sorted(scan, key=lambda entry: entry.name)
    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            if entry.name != ".git":
                _walk(root, entry.path, files)
            continue
        rel = os.path.relpath(entry.path, root).replace(os.sep, "/")
        if entry.is_symlink():
            files[rel] = _hash_string("symlink:" + os.readlink(entry.path))
        else:
            files[rel] = _hash_file(entry.path)


def _hash_file(path: str) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as stream:
        for chunk in iter(lambda: stream.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _hash_string(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def _is_direct_domain_file(file: str) -> bool:
    if not file.startswith(_DOMAIN_PREFIX):
        return False
    name = file[len(_DOMAIN_PREFIX):]
    return name != "" and "/" not in name