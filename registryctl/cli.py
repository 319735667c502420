"""Command-line entry point: validate, review-check, diff and sync."""

from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Sequence

from .cloudflare import CloudflareClient
from .diff import Change, format_changes, generate
from .parser import parse_registry
from .registry import Registry
from .review import ReviewResult, check
from .sync import SyncError, apply
from .validator import authorize_github, validate

USAGE = "usage: baka-registry <validate|review-check|diff|sync> [flags]"


class UsageError(Exception):
    """The command line could not be understood."""


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        raise UsageError(f"{self.prog}: {message}")


def _flag_parser(name: str) -> _ArgumentParser:
    return _ArgumentParser(prog=name, allow_abbrev=False)


def _add_flag(parser: argparse.ArgumentParser, name: str, default: str, help_text: str) -> None:
    parser.add_argument(
        f"-{name}", f"--{name}", dest=name.replace("-", "_"), default=default, help=help_text
    )


def _bool(value: bool) -> str:
    return "true" if value else "false"


def _load_registry(root: str) -> Registry:
    return parse_registry(root)


def _print_changes(changes: list[Change]) -> None:
    if not changes:
        print("no changes")
        return
    print(format_changes(changes))


def _write_review_outputs(path: str, result: ReviewResult) -> None:
    if not path:
        return
    fd = os.open(path, os.O_CREAT | os.O_WRONLY | os.O_APPEND, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as stream:
        stream.write(
            f"registered={_bool(result.registered)}\n"
            f"requires_review={_bool(result.requires_review)}\n"
            f"auto_merge={_bool(result.auto_merge)}\n"
        )


def _run_validate(args: Sequence[str]) -> None:
    parser = _flag_parser("validate")
    _add_flag(parser, "root", ".", "repository root")
    _add_flag(
        parser,
        "github-author",
        os.environ.get("GITHUB_PR_AUTHOR", ""),
        "GitHub PR author to authorize",
    )
    options = parser.parse_args(list(args))

    reg = _load_registry(options.root)
    validate(reg)
    if options.github_author:
        authorize_github(reg, options.github_author)
    print("registry validation passed")


def _run_review_check(args: Sequence[str]) -> None:
    parser = _flag_parser("review-check")
    _add_flag(parser, "base-root", "", "base repository root")
    _add_flag(parser, "head-root", ".", "PR repository root")
    _add_flag(parser, "github-author", os.environ.get("GITHUB_PR_AUTHOR", ""), "GitHub PR author")
    _add_flag(
        parser,
        "github-output",
        os.environ.get("GITHUB_OUTPUT", ""),
        "GitHub Actions output file",
    )
    options = parser.parse_args(list(args))
    if not options.base_root:
        raise UsageError("-base-root is required")
    if not options.github_author:
        raise UsageError("-github-author is required")

    result = check(options.base_root, options.head_root, options.github_author)
    _write_review_outputs(options.github_output, result)

    print(f"registered={_bool(result.registered)}")
    print(f"requires_review={_bool(result.requires_review)}")
    print(f"auto_merge={_bool(result.auto_merge)}")
    for file in result.changed_files:
        print("changed: " + file)
    for reason in result.reasons:
        print("review: " + reason)


def _desired_from_root(name: str, args: Sequence[str]):
    parser = _flag_parser(name)
    _add_flag(parser, "root", ".", "repository root")
    options = parser.parse_args(list(args))
    reg = _load_registry(options.root)
    validate(reg)
    return reg.desired_records()


def _run_diff(args: Sequence[str]) -> None:
    desired = _desired_from_root("diff", args)
    client = CloudflareClient.from_env()
    current = client.list_records()
    _print_changes(generate(current, desired))


def _run_sync(args: Sequence[str]) -> None:
    desired = _desired_from_root("sync", args)
    client = CloudflareClient.from_env()
    try:
        changes = apply(client, desired)
    except SyncError as exc:
        _print_changes(exc.changes)
        raise
    _print_changes(changes)


_COMMANDS = {
    "validate": _run_validate,
    "review-check": _run_review_check,
    "diff": _run_diff,
    "sync": _run_sync,
}


def run(args: Sequence[str]) -> None:
    """Run one command with its flags; raise on any failure."""
    args = list(args)
    if not args:
        raise UsageError(USAGE)
    command = _COMMANDS.get(args[0])
    if command is None:
        raise UsageError(f'unknown command "{args[0]}"')
    command(args[1:])


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line and return the process exit status."""
    if argv is None:
        argv = sys.argv[1:]
    try:
        run(argv)
    except Exception as exc:  # noqa: BLE001 - every failure is reported the same way
        print(exc, file=sys.stderr)
        return 1
    return 0