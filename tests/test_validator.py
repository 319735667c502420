import io

import pytest

from registryctl.parser import parse_domain, parse_maintainer
from registryctl.registry import Domain, Maintainer, Record, Registry
from registryctl.validator import (
    ValidationError,
    ValidationIssue,
    authorize_domain_changes,
    authorize_github,
    has_github_auth,
    validate,
)

ALICE_MNT = "mntner: EXAMPLE-MNT\nauth: github:alice\n"
BOB_MNT = "mntner: BOB-MNT\nauth: github:bob\n"
DOMAIN_FILE = "registry/domain/example.com"


def domain_text(*records, name="example.com", mnt="EXAMPLE-MNT"):
    header = f"domain: {name}\nmnt-by: {mnt}\n"
    return header + "\n".join(records) + "\n"


def build(maintainers, domains):
    reg = Registry()
    for index, text in enumerate(maintainers):
        mntner = parse_maintainer(f"registry/mntner/m{index}", io.StringIO(text))
        reg.maintainers[mntner.name] = mntner
    for filename, text in domains.items():
        domain = parse_domain(filename, io.StringIO(text))
        reg.domains[domain.name] = domain
    return reg


def messages_for(*records):
    reg = build([ALICE_MNT], {DOMAIN_FILE: domain_text(*records)})
    with pytest.raises(ValidationError) as info:
        validate(reg)
    return [issue.msg for issue in info.value.issues]


def test_valid_registry_then_bad_record_fails():
    reg = build(
        [ALICE_MNT],
        {
            DOMAIN_FILE: domain_text(
                "@ A 192.0.2.1",
                "@ AAAA 2001:db8::1",
                "www CNAME @",
                "@ MX 10 mail",
                "mail A 192.0.2.2",
                "_sip._tcp SRV 10 5 5060 sip",
                "@ CAA 0 issue letsencrypt.org",
                "@ TXT hello",
            )
        },
    )
    validate(reg)
    reg.domains["example.com"].records[0].content = "not-an-ip"
    with pytest.raises(ValidationError, match="A record content must be an IPv4 address"):
        validate(reg)


def test_validate_none_registry():
    with pytest.raises(ValidationError) as info:
        validate(None)
    assert [issue.msg for issue in info.value.issues] == ["registry is nil"]


def test_address_families():
    assert messages_for("@ A 2001:db8::1") == ["A record content must be an IPv4 address"]
    assert messages_for("@ AAAA 192.0.2.1") == [
        "AAAA record content must be an IPv6 address"
    ]
    assert messages_for("@ AAAA ::ffff:192.0.2.1") == [
        "AAAA record content must be an IPv6 address"
    ]


def test_cname_rules():
    assert messages_for("www CNAME 192.0.2.1") == [
        "CNAME target must be a domain name, not an IP address"
    ]
    assert messages_for("www CNAME www") == ["CNAME target cannot reference itself"]
    assert messages_for("www CNAME @", "www TXT hi") == [
        "CNAME cannot coexist with other record types at the same name"
    ]


def test_duplicate_record_key_reports_first_line():
    msgs = messages_for("@ A 192.0.2.1", "@ A 192.0.2.2")
    assert msgs == ["duplicate record key also defined on line 3"]


def test_srv_and_caa_rules():
    assert messages_for("sip SRV 10 5 5060 sip") == [
        "SRV name must start with _service._proto"
    ]
    assert messages_for("_sip._tcp SRV 10 5 0 sip") == [
        "SRV port must be between 1 and 65535"
    ]
    assert messages_for("@ CAA 256 issue ca.example.com") == [
        "CAA content must contain flags, tag, and value"
    ]


def test_ns_combination_only_at_apex():
    assert messages_for("sub NS ns1.example.net", "sub A 192.0.2.1") == [
        "NS records cannot be combined with other record types except at zone apex"
    ]
    reg = build(
        [ALICE_MNT],
        {DOMAIN_FILE: domain_text("@ NS ns1.example.net", "@ A 192.0.2.1")},
    )
    validate(reg)
    reg.domains["example.com"].records.append(
        Record(name="x", type="NS", target="bad", line=9, raw="x NS bad")
    )
    with pytest.raises(ValidationError, match="NS target must be a valid FQDN"):
        validate(reg)


def test_mx_priority_required_and_ranged():
    domain = Domain(
        name="example.com",
        maintainer="EXAMPLE-MNT",
        file=DOMAIN_FILE,
        records=[
            Record(name="@", type="MX", target="mail.example.com", line=3, raw="r1"),
            Record(
                name="mx2", type="MX", priority=70000,
                target="mail.example.com", line=4, raw="r2",
            ),
        ],
    )
    reg = build([ALICE_MNT], {})
    reg.domains["example.com"] = domain
    with pytest.raises(ValidationError) as info:
        validate(reg)
    assert [(i.line, i.msg) for i in info.value.issues] == [
        (3, "MX priority is required"),
        (4, "MX priority must be between 0 and 65535"),
    ]


def test_domain_header_issues():
    reg = build(
        [ALICE_MNT],
        {"registry/domain/other.com": domain_text("@ A 192.0.2.1", mnt="NOBODY-MNT")},
    )
    with pytest.raises(ValidationError) as info:
        validate(reg)
    assert [i.msg for i in info.value.issues] == [
        "mnt-by references unknown maintainer NOBODY-MNT",
        'filename must match domain name "example.com"',
    ]


def test_maintainer_auth_issues():
    text = (
        "mntner: BAD-MNT\n"
        "auth: github:-bad-\n"
        "auth: ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIPlaceholder\n"
        "auth: pgp-fingerprint ABCD\n"
    )
    reg = build([text], {})
    with pytest.raises(ValidationError) as info:
        validate(reg)
    issues = info.value.issues
    assert [i.msg for i in issues] == [
        "invalid github auth username",
        "unsupported auth method",
    ]
    assert issues[0].text == "auth: github:-bad-"
    assert issues[1].line == 4


def test_maintainer_without_auth():
    reg = Registry(maintainers={"X-MNT": Maintainer(name="X-MNT", file="f")})
    with pytest.raises(ValidationError) as info:
        validate(reg)
    assert str(info.value) == "f: at least one auth field is required"


def test_issue_formatting():
    assert str(ValidationIssue(file="f", line=3, text='a "b"', msg="m")) == 'f:3: m: "a \\"b\\""'
    assert str(ValidationIssue(file="f", msg="m")) == "f: m"
    assert str(ValidationIssue(msg="m")) == "m"
    error = ValidationError([ValidationIssue(msg="one"), ValidationIssue(msg="two")])
    assert str(error) == "one\ntwo"


def test_has_github_auth():
    reg = build([ALICE_MNT], {})
    assert has_github_auth(reg, "ALICE") is True
    assert has_github_auth(reg, "bob") is False
    assert has_github_auth(None, "alice") is False


def test_authorize_github():
    reg = build([ALICE_MNT], {DOMAIN_FILE: domain_text("@ A 192.0.2.1")})
    authorize_github(reg, " alice ")
    with pytest.raises(ValidationError) as info:
        authorize_github(reg, "bob")
    issue = info.value.issues[0]
    assert issue.msg == 'GitHub author "bob" is not authorized by maintainer "EXAMPLE-MNT"'
    assert issue.line == 2
    with pytest.raises(ValidationError, match="GitHub author is required for authorization"):
        authorize_github(reg, "  ")


def test_authorize_domain_changes():
    base = build([ALICE_MNT], {DOMAIN_FILE: domain_text("@ A 192.0.2.1")})
    head = build([ALICE_MNT, BOB_MNT], {
        DOMAIN_FILE: domain_text("@ A 192.0.2.9"),
        "registry/domain/new.org": domain_text("@ A 192.0.2.1", name="new.org", mnt="BOB-MNT"),
    })
    authorize_domain_changes(base, head, [DOMAIN_FILE], "alice")

    with pytest.raises(ValidationError) as info:
        authorize_domain_changes(base, head, [DOMAIN_FILE], "bob")
    assert [i.msg for i in info.value.issues] == [
        'GitHub author "bob" is not authorized to change existing domain "example.com"',
        'GitHub author "bob" is not authorized by base maintainer "EXAMPLE-MNT"',
    ]

    with pytest.raises(ValidationError) as info:
        authorize_domain_changes(base, head, ["registry/domain/new.org"], "bob")
    assert [i.file for i in info.value.issues] == ["registry/domain/new.org"]


def test_authorize_domain_changes_requires_inputs():
    reg = Registry()
    with pytest.raises(ValidationError, match="GitHub author is required for authorization"):
        authorize_domain_changes(reg, reg, [], "")
    with pytest.raises(
        ValidationError, match="base and PR registries are required for authorization"
    ):
        authorize_domain_changes(None, reg, [], "alice")