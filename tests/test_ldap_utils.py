from unittest import mock

import ldap
import pytest

from ad_objects.errors import DirectoryError, ObjectNotFoundError, ValidationError
from ad_objects.ldap_utils import ADClient, LdapConnection

GUID = "174B2352-9939-4A7B-996C-4F605D078DF5"
GUID_BYTES = bytes.fromhex("52234B1739997B4A996C4F605D078DF5")
GUID_FILTER = "(objectGUID=\\52\\23\\4B\\17\\39\\99\\7B\\4A\\99\\6C\\4F\\60\\5D\\07\\8D\\F5)"
USER_DN = "CN=John Doe,OU=Users,DC=dev,DC=private"


@pytest.fixture
def ldap_conn():
    with mock.patch("ad_objects.ldap_utils.ldap.initialize") as initialize:
        conn = mock.MagicMock()
        initialize.return_value = conn
        yield conn


@pytest.fixture
def connection(ldap_conn):
    return LdapConnection("ldaps://dc01:636", "dev.private", "admin@dev.private", "Password123")


@pytest.fixture
def client(connection):
    return ADClient(connection)


def test_top_dn_defaults_to_domain_dn(connection):
    assert connection.top_dn == "dc=dev,dc=private"


def test_top_dn_must_be_under_domain():
    LdapConnection("ldap://dc01", "dev.private", "admin", "pw", top_dn="OU=Managed,DC=dev,DC=private")
    with pytest.raises(ValidationError):
        LdapConnection("ldap://dc01", "dev.private", "admin", "pw", top_dn="OU=Managed,DC=prod,DC=private")


def test_connection_is_shared(connection, ldap_conn):
    with mock.patch("ad_objects.ldap_utils.ldap.initialize", return_value=ldap_conn) as initialize:
        connection.acquire()
        connection.acquire()
        assert initialize.call_count == 1
        ldap_conn.simple_bind_s.assert_called_once_with("admin@dev.private", "Password123")

        connection.release()
        ldap_conn.unbind_s.assert_not_called()
        connection.release()
        ldap_conn.unbind_s.assert_called_once()
        assert connection.conn is None

        # reconnects after the last release
        with connection:
            pass
        assert initialize.call_count == 2


def test_insecure_tls_options(ldap_conn):
    connection = LdapConnection("ldaps://dc01:636", "dev.private", "admin", "pw", insecure_tls=True)
    with connection:
        ldap_conn.set_option.assert_any_call(ldap.OPT_X_TLS_REQUIRE_CERT, ldap.OPT_X_TLS_NEVER)


def test_bind_failure(connection, ldap_conn):
    ldap_conn.simple_bind_s.side_effect = ldap.INVALID_CREDENTIALS({"desc": "Invalid credentials"})
    with pytest.raises(DirectoryError, match="bind failed"):
        connection.acquire()
    assert connection.active_workers == 0
    assert connection.conn is None


def test_get_object_by_id(client, ldap_conn):
    ldap_conn.search_s.return_value = [(USER_DN, {"objectGUID": [GUID_BYTES]})]

    assert client.get_object_by_id(GUID.lower()) == (USER_DN, {"objectGUID": [GUID_BYTES]})
    ldap_conn.search_s.assert_called_once_with("dc=dev,dc=private", ldap.SCOPE_SUBTREE, GUID_FILTER, ["*"])


def test_get_object_by_id_ignores_referrals(client, ldap_conn):
    ldap_conn.search_s.return_value = [(USER_DN, {}), (None, ["ldap://other/dc=dev,dc=private"])]
    assert client.get_object_by_id(GUID)[0] == USER_DN


def test_get_object_by_id_not_found(client, ldap_conn):
    ldap_conn.search_s.return_value = []
    with pytest.raises(ObjectNotFoundError):
        client.get_object_by_id(GUID)


def test_get_object_by_id_multiple(client, ldap_conn):
    ldap_conn.search_s.return_value = [(USER_DN, {}), ("CN=Other,DC=dev,DC=private", {})]
    with pytest.raises(DirectoryError, match="multiple"):
        client.get_object_by_id(GUID)


def test_get_object_by_dn_missing(client, ldap_conn):
    ldap_conn.search_s.side_effect = ldap.NO_SUCH_OBJECT({"desc": "No such object"})
    with pytest.raises(ObjectNotFoundError):
        client.get_object_by_dn(USER_DN)


def test_get_objects_by_sam_escapes_filter(client, ldap_conn):
    ldap_conn.search_s.return_value = []
    assert client.get_objects_by_sam("j*doe") == []
    assert ldap_conn.search_s.call_args[0][2] == "(sAMAccountName=j\\2adoe)"


def test_add_object_returns_guid(client, ldap_conn):
    ldap_conn.search_s.return_value = [(USER_DN, {"objectGUID": [GUID_BYTES]})]

    assert client.add_object(USER_DN, {"objectClass": ["user"], "unicodePwd": [b'"\x00"\x00']}) == GUID
    ldap_conn.add_s.assert_called_once_with(
        USER_DN, [("objectClass", [b"user"]), ("unicodePwd", [b'"\x00"\x00'])]
    )


def test_add_object_failure(client, ldap_conn):
    ldap_conn.add_s.side_effect = ldap.ALREADY_EXISTS({"desc": "Already exists"})
    with pytest.raises(DirectoryError, match="add_object failed"):
        client.add_object(USER_DN, {"objectClass": ["user"]})


def test_modify_object(client, ldap_conn):
    client.modify_object(USER_DN, {"department": ["IT Update"], "title": []})
    ldap_conn.modify_s.assert_called_once_with(USER_DN, [
        (ldap.MOD_REPLACE, "department", [b"IT Update"]),
        (ldap.MOD_REPLACE, "title", None),
    ])


def test_modify_object_empty_set(client, ldap_conn):
    client.modify_object(USER_DN, {})
    ldap_conn.modify_s.assert_not_called()


def test_rename_object(client, ldap_conn):
    client.rename_object(USER_DN, "CN=John Q. Doe", "OU=Staff,DC=dev,DC=private")
    ldap_conn.rename_s.assert_called_once_with(USER_DN, "CN=John Q. Doe", "OU=Staff,DC=dev,DC=private", delold=1)


def test_delete_object(client, ldap_conn):
    ldap_conn.search_s.return_value = [(USER_DN, {})]
    client.delete_object(GUID)
    ldap_conn.delete_s.assert_called_once_with(USER_DN)


def test_delete_missing_object(client, ldap_conn):
    ldap_conn.search_s.return_value = []
    client.delete_object(GUID)
    ldap_conn.delete_s.assert_not_called()


def test_add_members_skips_existing(client, ldap_conn):
    group_dn = "CN=Staff,OU=Groups,DC=dev,DC=private"
    ldap_conn.modify_s.side_effect = [ldap.ALREADY_EXISTS({"desc": "Already exists"}), None]

    client.add_members(group_dn, [USER_DN, "CN=Jane Doe,OU=Users,DC=dev,DC=private"])

    assert ldap_conn.modify_s.call_count == 2
    ldap_conn.modify_s.assert_called_with(
        group_dn, [(ldap.MOD_ADD, "member", [b"CN=Jane Doe,OU=Users,DC=dev,DC=private"])]
    )


def test_remove_members(client, ldap_conn):
    group_dn = "CN=Staff,OU=Groups,DC=dev,DC=private"
    client.remove_members(group_dn, [USER_DN])
    ldap_conn.modify_s.assert_called_once_with(group_dn, [(ldap.MOD_DELETE, "member", [USER_DN.encode()])])

    client.remove_members(group_dn, [])
    assert ldap_conn.modify_s.call_count == 1


@pytest.mark.parametrize("error", [
    ldap.STRONG_AUTH_REQUIRED({"desc": "Strong(er) authentication required"}),
    ldap.CONNECT_ERROR({"desc": "Connect error"}),
])
def test_any_bind_failure_is_a_directory_error(connection, ldap_conn, error):
    ldap_conn.simple_bind_s.side_effect = error
    with pytest.raises(DirectoryError, match="bind failed"):
        connection.acquire()
    assert connection.active_workers == 0
    assert connection.conn is None


def test_initialize_failure_is_a_directory_error(connection):
    with mock.patch("ad_objects.ldap_utils.ldap.initialize",
                    side_effect=ldap.LDAPError({"desc": "Bad URL"})):
        with pytest.raises(DirectoryError, match="bind failed"):
            connection.acquire()
    assert connection.active_workers == 0


def test_unbalanced_release_keeps_count(connection, ldap_conn):
    connection.release()
    assert connection.active_workers == 0

    with connection:
        pass
    ldap_conn.unbind_s.assert_called_once()
    assert connection.conn is None
