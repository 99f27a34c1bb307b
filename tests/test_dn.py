import pytest

from ad_objects.dn import (
    domain_to_dn, is_valid_dn, parent_dn, rdn_value, validate_dn_string, validate_top_dn,
)
from ad_objects.errors import ValidationError

TOP_DN = "DC=dev,DC=private"


@pytest.mark.parametrize("dn", [
    "OU=Users,DC=dev,DC=private",
    "CN=John Doe,OU=Users,DC=dev,DC=private",
    "cn=john doe,ou=users,dc=dev,dc=private",
    "CN=Doe\\, John,OU=Users,DC=dev,DC=private",
    "DC=dev,DC=private",
])
def test_validate_dn_string(dn):
    validate_dn_string(dn, TOP_DN)


def test_validate_dn_string_wrong_suffix():
    with pytest.raises(ValidationError, match="should end with top dn") as exc:
        validate_dn_string("OU=Users,DC=prod,DC=private", TOP_DN)
    assert "is not a valid DN" not in str(exc.value)


def test_validate_dn_string_invalid_grammar():
    with pytest.raises(ValidationError, match="is not a valid DN") as exc:
        validate_dn_string("CN=x,bogus,DC=dev,DC=private", TOP_DN)
    assert "should end with" not in str(exc.value)


def test_validate_dn_string_reports_both_problems():
    dn = "CN=x,bogus,DC=prod,DC=private"
    with pytest.raises(ValidationError) as exc:
        validate_dn_string(dn, TOP_DN)
    message = str(exc.value)
    assert "should end with top dn" in message
    assert "is not a valid DN" in message
    assert message.endswith(f"got: {dn}")


def test_validate_top_dn():
    validate_top_dn("dc=dev,dc=private", "OU=Managed,DC=dev,DC=private")
    with pytest.raises(ValidationError, match="domain component"):
        validate_top_dn("dc=dev,dc=private", "OU=Managed,DC=prod,DC=private")


@pytest.mark.parametrize("dn, valid", [
    ("CN=x,DC=dev,DC=private", True),
    ("CN=x,bogus,DC=dev,DC=private", False),
    ("", True),
])
def test_is_valid_dn(dn, valid):
    assert is_valid_dn(dn) is valid


@pytest.mark.parametrize("domain, dn", [
    ("dev.private", "dc=dev,dc=private"),
    ("Example.COM", "dc=example,dc=com"),
    ("corp.example.com", "dc=corp,dc=example,dc=com"),
])
def test_domain_to_dn(domain, dn):
    assert domain_to_dn(domain) == dn


def test_parent_dn():
    assert parent_dn("CN=John Doe,OU=Users,DC=dev,DC=private") == "OU=Users,DC=dev,DC=private"
    assert parent_dn("CN=Doe\\, John,OU=Users,DC=dev,DC=private") == "OU=Users,DC=dev,DC=private"


def test_rdn_value():
    assert rdn_value("CN=John Doe,OU=Users,DC=dev,DC=private") == "John Doe"
    assert rdn_value("CN=Doe\\, John,OU=Users,DC=dev,DC=private") == "Doe, John"


@pytest.mark.parametrize("dn", [
    "OU=foo\\,DC=dev,DC=private",
    "OU=Usersdc=dev,dc=private",
    "DC=xdev,DC=private",
])
def test_validate_dn_string_suffix_on_rdn_boundary(dn):
    with pytest.raises(ValidationError, match="should end with top dn"):
        validate_dn_string(dn, TOP_DN)


def test_validate_dn_string_escaped_backslash_before_comma():
    validate_dn_string("OU=foo\\\\,DC=dev,DC=private", TOP_DN)
