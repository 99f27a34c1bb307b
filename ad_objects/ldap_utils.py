"""
LDAP operations against Active Directory.

``LdapConnection`` owns one python-ldap connection shared by all callers,
``ADClient`` exposes the handful of directory operations the object models need.
"""

import logging
import threading
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

import ldap
import ldap.filter

from .config import LDAP_TIMEOUT
from .dn import domain_to_dn, validate_top_dn
from .errors import DirectoryError, ObjectNotFoundError
from .guid import decode_guid, encode_guid, guid_filter_value

logger = logging.getLogger(__name__)

Entry = Tuple[str, Dict[str, List[bytes]]]


class LdapConnection:
    """
    Reference-counted LDAP connection.

    The first ``acquire()`` opens and binds the connection, the last
    ``release()`` unbinds it. LDAP is asynchronous so a single bound
    connection serves every concurrent user.
    """

    def __init__(self, ldap_url: str, domain: str, bind_username: str, bind_password: str,
                 top_dn: Optional[str] = None, insecure_tls: bool = False):
        """
        Initialize LDAP connection settings.

        Args:
            ldap_url: Server URL (ldap://host:389 or ldaps://host:636)
            domain: Domain name (FQDN)
            bind_username: Account used to bind (user@domain.com or DN)
            bind_password: Password of the bind account
            top_dn: DN every managed object must live under (default: domain DN)
            insecure_tls: Skip server certificate verification

        Raises:
            ValidationError: If the top DN is not under the domain DN
        """
        self.ldap_url = ldap_url
        self.domain = domain.lower()
        self.bind_username = bind_username
        self.bind_password = bind_password
        self.insecure_tls = insecure_tls

        domain_dn = domain_to_dn(self.domain)
        top_dn = top_dn or domain_dn
        validate_top_dn(domain_dn, top_dn)
        self.top_dn = top_dn.lower()

        self.conn = None
        self.active_workers = 0
        self._lock = threading.Lock()

    def acquire(self):
        """Registers a user of the connection, connecting if needed."""
        with self._lock:
            self.active_workers += 1
            if self.conn is not None:
                logger.debug(f"LDAP connection is active, active workers: {self.active_workers}")
                return
            try:
                self._connect()
            except Exception:
                self.active_workers -= 1
                raise

    def release(self):
        """Unregisters a user; the last one closes the connection."""
        with self._lock:
            if self.active_workers <= 0:
                logger.warning("LDAP connection released more times than acquired")
                return
            self.active_workers -= 1
            logger.debug(f"LDAP connection released, active workers: {self.active_workers}")
            if self.active_workers == 0 and self.conn is not None:
                logger.debug("No active workers remaining, closing LDAP connection")
                self._disconnect()

    def _connect(self):
        logger.info(f"Connecting to {self.ldap_url}...")
        try:
            conn = ldap.initialize(self.ldap_url)
            conn.set_option(ldap.OPT_PROTOCOL_VERSION, 3)
            conn.set_option(ldap.OPT_REFERRALS, 0)
            conn.set_option(ldap.OPT_NETWORK_TIMEOUT, LDAP_TIMEOUT)

            if self.insecure_tls:
                conn.set_option(ldap.OPT_X_TLS_REQUIRE_CERT, ldap.OPT_X_TLS_NEVER)
                conn.set_option(ldap.OPT_X_TLS_NEWCTX, 0)

            logger.debug(f"Binding as {self.bind_username}...")
            conn.simple_bind_s(self.bind_username, self.bind_password)
        except ldap.INVALID_CREDENTIALS as ex:
            logger.error("Invalid credentials")
            raise DirectoryError("bind", self.bind_username, ex) from ex
        except ldap.SERVER_DOWN as ex:
            logger.error(f"Unable to reach LDAP server {self.ldap_url}")
            raise DirectoryError("bind", self.bind_username, ex) from ex
        except ldap.LDAPError as ex:
            logger.error(f"LDAP bind to {self.ldap_url} failed: {ex}")
            raise DirectoryError("bind", self.bind_username, ex) from ex

        self.conn = conn
        logger.info("Authentication successful")

    def _disconnect(self):
        try:
            self.conn.unbind_s()
            logger.info("LDAP connection closed")
        except ldap.LDAPError as ex:
            logger.warning(f"Error while closing LDAP connection: {ex}")
        finally:
            self.conn = None

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()


def _encode_values(values: Sequence[Union[str, bytes]]) -> List[bytes]:
    return [v if isinstance(v, bytes) else str(v).encode('utf-8') for v in values]


class ADClient:
    """
    Directory operations used by the object models.
    """

    def __init__(self, connection: LdapConnection):
        self.connection = connection

    @property
    def top_dn(self) -> str:
        return self.connection.top_dn

    def _search(self, operation: str, base: str, scope: int, ldap_filter: str) -> List[Entry]:
        with self.connection as c:
            try:
                results = c.conn.search_s(base, scope, ldap_filter, ['*'])
            except ldap.NO_SUCH_OBJECT:
                raise ObjectNotFoundError(f"LDAP object not found: {base} {ldap_filter}") from None
            except ldap.LDAPError as ex:
                raise DirectoryError(operation, base, ex) from ex
        # referrals come back without a DN
        return [(dn, attrs) for dn, attrs in results if dn]

    def get_object_by_dn(self, dn: str) -> Entry:
        """
        Returns the entry stored at ``dn``.

        Raises:
            ObjectNotFoundError: If there is no such entry
        """
        for entry_dn, attrs in self._search("get_object_by_dn", dn, ldap.SCOPE_BASE, "(objectClass=*)"):
            if entry_dn.lower() == dn.lower():
                return entry_dn, attrs
        raise ObjectNotFoundError(f"LDAP object not found: {dn}")

    def get_object_by_id(self, guid: str) -> Entry:
        """
        Returns the entry whose objectGUID is ``guid``.

        Args:
            guid: GUID string

        Raises:
            FormatError: If the GUID string is malformed
            ObjectNotFoundError: If no entry matches
            DirectoryError: If several entries match
        """
        ldap_filter = f"(objectGUID={guid_filter_value(encode_guid(guid))})"
        results = self._search("get_object_by_id", self.top_dn, ldap.SCOPE_SUBTREE, ldap_filter)

        if not results:
            raise ObjectNotFoundError(f"LDAP object not found for GUID: {guid}")
        if len(results) > 1:
            raise DirectoryError("get_object_by_id", self.top_dn,
                                 Exception(f"multiple ldap objects found for GUID: {guid}"))
        return results[0]

    def get_objects_by_sam(self, sam_account_name: str) -> List[Entry]:
        """Returns the entries with the given sAMAccountName (possibly none)."""
        ldap_filter = f"(sAMAccountName={ldap.filter.escape_filter_chars(sam_account_name)})"
        try:
            return self._search("get_objects_by_sam", self.top_dn, ldap.SCOPE_SUBTREE, ldap_filter)
        except ObjectNotFoundError:
            return []

    def add_object(self, dn: str, attributes: Mapping[str, Sequence[Union[str, bytes]]]) -> str:
        """
        Creates an entry and returns its objectGUID.

        Args:
            dn: DN of the new entry
            attributes: Attribute map of the add request

        Returns:
            GUID string assigned by the directory
        """
        modlist = [(name, _encode_values(values)) for name, values in attributes.items()]
        with self.connection as c:
            try:
                c.conn.add_s(dn, modlist)
            except ldap.LDAPError as ex:
                raise DirectoryError("add_object", dn, ex) from ex

        _, attrs = self.get_object_by_dn(dn)
        raw_guid = attrs.get('objectGUID', [b''])[0]
        guid = decode_guid(raw_guid)
        logger.info(f"Object added to active directory, dn: {dn}, guid: {guid}")
        return guid

    def modify_object(self, dn: str, modify_set: Mapping[str, Sequence[Union[str, bytes]]]):
        """
        Applies a replace modify-set to an entry.

        An empty value list removes the attribute. Nothing is sent for an
        empty modify-set.
        """
        if not modify_set:
            logger.debug(f"No modification for {dn}")
            return

        modlist = [(ldap.MOD_REPLACE, name, _encode_values(values) or None)
                   for name, values in modify_set.items()]
        for name in modify_set:
            logger.debug(f"Replacing attribute {name} on {dn}")

        with self.connection as c:
            try:
                c.conn.modify_s(dn, modlist)
            except ldap.LDAPError as ex:
                raise DirectoryError("modify_object", dn, ex) from ex
        logger.info(f"Object modified, dn: {dn}")

    def rename_object(self, dn: str, new_rdn: str, new_superior: str):
        """Moves and/or renames an entry, deleting the old RDN."""
        with self.connection as c:
            try:
                c.conn.rename_s(dn, new_rdn, new_superior, delold=1)
            except ldap.LDAPError as ex:
                raise DirectoryError("rename_object", dn, ex) from ex
        logger.info(f"Object DN modified, new rdn: {new_rdn}, new superior: {new_superior}")

    def delete_object(self, guid: str):
        """Deletes the entry with the given GUID; a missing entry is not an error."""
        try:
            dn, _ = self.get_object_by_id(guid)
        except ObjectNotFoundError:
            logger.debug(f"Object {guid} already absent")
            return

        with self.connection as c:
            try:
                c.conn.delete_s(dn)
            except ldap.LDAPError as ex:
                raise DirectoryError("delete_object", dn, ex) from ex
        logger.info(f"AD object deleted, guid: {guid}, dn: {dn}")

    def add_members(self, group_dn: str, members: Sequence[str]):
        """Adds objects to a group one at a time, skipping existing members."""
        with self.connection as c:
            for member in members:
                try:
                    c.conn.modify_s(group_dn, [(ldap.MOD_ADD, 'member', _encode_values([member]))])
                except ldap.ALREADY_EXISTS:
                    logger.debug(f"{member} is already a member of {group_dn}")
                    continue
                except ldap.LDAPError as ex:
                    raise DirectoryError("add_members", group_dn, ex) from ex

    def remove_members(self, group_dn: str, members: Sequence[str]):
        """Removes objects from a group."""
        if not members:
            return
        with self.connection as c:
            try:
                c.conn.modify_s(group_dn, [(ldap.MOD_DELETE, 'member', _encode_values(members))])
            except ldap.LDAPError as ex:
                raise DirectoryError("remove_members", group_dn, ex) from ex
        logger.info(f"AD objects removed from group {group_dn}: {list(members)}")
