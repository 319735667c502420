# registryctl

Tooling for a DNS subdomain registry kept as plain text files in a
repository. Maintainers and domains are described under `registry/`.
`registryctl` parses and validates them, decides whether a pull request may
be merged without review, and keeps a Cloudflare zone in step with the files.

## Registry layout

```
registry/
  mntner/
    alice               # maintainer objects
  domain/
    alice.example.org   # one file per domain, named after the domain
```

Files whose names start with `.` are skipped. Subdirectories and symbolic
links inside `mntner/` or `domain/` are rejected.

A maintainer file:

```
mntner: alice
descr: Alice's maintainer object
auth: github:alice
```

`auth` lines take the form `github:<username>` or `ssh-ed25519 <key>`; any
other method fails validation.

A domain file holds headers (`domain`, `descr`, `mnt-by`) followed by
records. Headers may not appear after the first record.

```
domain: alice.example.org
descr: Alice's site
mnt-by: alice

@     A      192.0.2.10 proxied
www   CNAME  @
@     TXT    "hello world"
@     MX     10 mail
_sip._tcp  SRV  10 5 5060 sip
```

Each record is `name type value...`. Double quotes group text containing
blanks, and a backslash inside quotes escapes the next character. `@` stands
for the zone apex, and a bare label as a target is taken to be inside the
zone. Supported record types are A, AAAA, CNAME, TXT, MX, NS, SRV and CAA.
`proxied` may end an A, AAAA or CNAME record.

## Installation

```
pip install .
```

## Commands

Every command prints its error to standard error and exits with status 1
on failure. Flags may be written with one dash or two (`-root` or `--root`).

```
baka-registry validate [-root DIR] [-github-author NAME]
```
Parses and validates the registry under `DIR` (default `.`) and prints
`registry validation passed`. If an author is given, it also checks that
the author is listed as a GitHub auth of the maintainer of every domain.
The author defaults to the `GITHUB_PR_AUTHOR` environment variable.

```
baka-registry review-check -base-root DIR [-head-root DIR] -github-author NAME [-github-output FILE]
```
Parses and validates both trees, compares their files by SHA-256 (ignoring
`.git` directories), and prints `registered`, `requires_review` and
`auto_merge` as `true`/`false`, followed by one `changed:` line per changed
file and one `review:` line per reason a review is needed. A change merges
automatically only when the author is registered in the base registry, at
least one file changed, every changed file is directly under
`registry/domain/`, and the base registry's maintainers authorize the author
for both the old and the new version of each changed domain. The three flags
are appended to the GitHub Actions output file (default: `GITHUB_OUTPUT`)
when one is given. `-head-root` defaults to `.`, and `-github-author`
defaults to `GITHUB_PR_AUTHOR`.

```
baka-registry diff [-root DIR]
baka-registry sync [-root DIR]
```
`diff` lists the changes that would bring the Cloudflare zone in line with
the registry. `sync` applies them and prints them, even when applying one of
them fails. Both need `CLOUDFLARE_API_TOKEN` and `CLOUDFLARE_ZONE_ID` in the
environment. Changes are printed one per line:

```
+ create A www.alice.example.org -> 192.0.2.10
~ update TXT alice.example.org
- delete CNAME old.alice.example.org
```

or `no changes` when there are none.

## Library use

```python
from registryctl.parser import parse_registry
from registryctl.validator import validate
from registryctl.diff import generate, format_changes

reg = parse_registry(".")
validate(reg)                      # raises ValidationError listing every issue
desired = reg.desired_records()
print(format_changes(generate([], desired)))
```

- `registryctl.parser`: `parse_maintainer`, `parse_domain` and
  `parse_registry`. These functions raise `ParseError` with the file, line
  and text of the line that could not be read.
- `registryctl.validator`: `validate`, `authorize_github`,
  `has_github_auth` and `authorize_domain_changes`. Failures raise
  `ValidationError`, whose `issues` holds `ValidationIssue` items.
- `registryctl.review`: `check` returns a `ReviewResult`, and
  `changed_files` lists the paths that differ between two trees.
- `registryctl.diff`: `generate`, `format_change`, `format_changes`, and the
  `Change` and `Action` types.
- `registryctl.sync`: `apply` takes any `registryctl.provider.DNSProvider`
  and a list of desired `registryctl.provider.Record`s. If a change fails,
  it raises `SyncError`, whose `changes` holds the planned changes.
- `registryctl.cloudflare`: `CloudflareClient`, built directly or with
  `CloudflareClient.from_env()`, is the bundled provider. It raises
  `CloudflareError`.

## Limits

- Cloudflare is the only DNS provider included. Other services need their
  own `DNSProvider` implementation.
- Records carry no TTL. TTL differences are neither read nor changed.
- `ssh-ed25519` auth lines are checked only for their form. Authorization
  uses GitHub usernames alone, and no signatures are verified.

## Tests

```
pip install .[test]
pytest
```