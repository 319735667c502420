import pytest

from registryctl.registry import (
    SUPPORTED_RECORD_TYPES,
    TYPE_CAA,
    TYPE_SRV,
    Domain,
    Record,
    Registry,
    fqdn,
    is_proxyable,
    normalize_name,
    target_name,
)

ZONE = "example.com"


@pytest.mark.parametrize("name", ["  Foo.Example. ", "bar", "", "A.B.C.", "@"])
def test_normalize_name_is_idempotent_and_lower(name):
    once = normalize_name(name)
    assert normalize_name(once) == once
    assert once == once.lower()
    assert once == once.strip()


def test_normalize_name_value():
    assert normalize_name("  Foo.Example. ") == "foo.example"


@pytest.mark.parametrize("name", ["@", "", "  "])
def test_fqdn_apex(name):
    assert fqdn("Example.COM.", name) == ZONE


def test_fqdn_relative_name():
    assert fqdn(ZONE, "WWW") == "www.example.com"


def test_fqdn_already_qualified():
    assert fqdn(ZONE, "www.example.com.") == "www.example.com"
    assert fqdn(ZONE, ZONE) == ZONE


def test_target_name_cases():
    assert target_name(ZONE, "@") == ZONE
    assert target_name(ZONE, "") == ""
    assert target_name(ZONE, "mail") == "mail.example.com"
    assert target_name(ZONE, "Other.Net.") == "other.net"


def test_is_proxyable():
    assert is_proxyable("a")
    assert is_proxyable("AAAA")
    assert is_proxyable("cname")
    assert not any(
        is_proxyable(t) for t in SUPPORTED_RECORD_TYPES - {"A", "AAAA", "CNAME"}
    )


def test_a_record_desired_state():
    domain = Domain(
        name=ZONE,
        records=[Record(name="www", type="a", content="192.0.2.1", proxied=True)],
    )
    [record] = domain.desired_records()
    assert record.type == "A"
    assert record.name == fqdn(ZONE, "www")
    assert record.content == "192.0.2.1"
    assert record.proxied is True
    assert record.data is None


def test_cname_target_resolved_in_zone():
    domain = Domain(name=ZONE, records=[Record(name="blog", type="CNAME", content="www")])
    [record] = domain.desired_records()
    assert record.content == target_name(ZONE, "www")
    assert record.proxied is False


def test_txt_is_not_proxied():
    domain = Domain(name=ZONE, records=[Record(name="@", type="TXT", content="hello")])
    [record] = domain.desired_records()
    assert record.content == "hello"
    assert record.proxied is None
    assert record.name == ZONE


def test_mx_carries_priority():
    domain = Domain(
        name=ZONE, records=[Record(name="@", type="MX", priority=10, target="mail")]
    )
    [record] = domain.desired_records()
    assert record.priority == 10
    assert record.content == target_name(ZONE, "mail")


def test_srv_data_and_content():
    domain = Domain(
        name=ZONE,
        records=[
            Record(
                name="_sip._tcp",
                type=TYPE_SRV,
                priority=10,
                weight=5,
                port=5060,
                target="sip",
            )
        ],
    )
    [record] = domain.desired_records()
    target = target_name(ZONE, "sip")
    assert record.content.split() == ["10", "5", "5060", target]
    assert record.data["service"] == "_sip"
    assert record.data["proto"] == "_tcp"
    assert record.data["name"] == ZONE
    assert record.data["port"] == 5060
    assert record.data["target"] == target


def test_srv_missing_numbers_raises():
    domain = Domain(
        name=ZONE, records=[Record(name="_sip._tcp", type=TYPE_SRV, target="sip")]
    )
    with pytest.raises(ValueError, match="missing numeric fields"):
        domain.desired_records()


def test_caa_data():
    content = '0 issue letsencrypt.org'
    domain = Domain(name=ZONE, records=[Record(name="@", type=TYPE_CAA, content=content)])
    [record] = domain.desired_records()
    assert record.content == content
    assert record.data == {"flags": 0, "tag": "issue", "value": "letsencrypt.org"}


@pytest.mark.parametrize("content", ["x issue ca.example", "0 issue", "1_0 issue ca"])
def test_caa_data_absent_for_bad_content(content):
    domain = Domain(name=ZONE, records=[Record(name="@", type=TYPE_CAA, content=content)])
    [record] = domain.desired_records()
    assert record.data is None


def test_registry_orders_by_domain_name():
    registry = Registry(
        domains={
            "zz.example": Domain(
                name="zz.example", records=[Record(name="@", type="TXT", content="z")]
            ),
            "aa.example": Domain(
                name="aa.example", records=[Record(name="@", type="TXT", content="a")]
            ),
        }
    )
    names = [record.name for record in registry.desired_records()]
    assert names == ["aa.example", "zz.example"]


def test_empty_registry_has_no_records():
    assert Registry().desired_records() == []