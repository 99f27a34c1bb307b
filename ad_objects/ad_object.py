"""
Models for the Active Directory objects managed by this package.

Each model converts a directory entry into its state (``from_entry``), and a
desired state into an add request (``to_add_attributes``) or into the minimal
replace modify-set against a previous state (``modify_set``).
"""

import logging
import re
from typing import Dict, List, Mapping, Optional, Sequence

import ldap.dn

from .account_control import apply_enabled, is_enabled
from .attributes import (
    get_attribute_value, get_attribute_values, get_modified_attributes, get_raw_value,
    membership_changes, read_attributes,
)
from .config import (
    COMPUTER_OBJECT_CLASSES, GROUP_OBJECT_CLASSES, GROUP_SCOPE_GLOBAL, GROUP_TYPE_SECURITY,
    NORMAL_ACCOUNT_UAC, OU_OBJECT_CLASSES, SAM_ACCOUNT_NAME_MAX_LENGTH, USER_OBJECT_CLASSES,
    WORKSTATION_TRUST_ACCOUNT_UAC,
)
from .dn import is_valid_dn, parent_dn, validate_dn_string
from .errors import FormatError, ValidationError
from .group_type import decode_group_type, encode_group_type, validate_group_scope, validate_group_type
from .guid import decode_guid
from .sid import decode_sid

logger = logging.getLogger(__name__)

USER_PRINCIPAL_NAME_RE = re.compile(r'^.+@.+[.].+[a-zA-Z]$')


def encode_password(password: str) -> bytes:
    """Encodes a password for the unicodePwd attribute (quoted, UTF-16-LE)."""
    return f'"{password}"'.encode('utf-16-le')


def validate_sam_account_name(sam_account_name: str, computer: bool = False):
    errors = []
    if computer and not sam_account_name.endswith('$'):
        errors.append(
            f"sAMAccountName attribute of a computer object should have trailing dollar sign ('$'), "
            f"got: {sam_account_name}"
        )
    if len(sam_account_name) > SAM_ACCOUNT_NAME_MAX_LENGTH:
        errors.append(
            f"sAMAccountName attribute is limited to MAX {SAM_ACCOUNT_NAME_MAX_LENGTH} characters, "
            f"got value:{sam_account_name} count:{len(sam_account_name)}"
        )
    if errors:
        raise ValidationError("; ".join(errors))


def validate_user_principal_name(user_principal_name: str):
    if not USER_PRINCIPAL_NAME_RE.match(user_principal_name):
        raise ValidationError(
            f"user_principal_name should be in format `someone@domain.com`, got value:{user_principal_name}"
        )


def _decode_sid_attribute(attrs: Mapping[str, Sequence]) -> str:
    # not every object carries a SID, it is informational only
    raw_sid = get_raw_value(attrs, 'objectSid')
    if raw_sid is None:
        return ""
    try:
        return decode_sid(raw_sid)
    except FormatError as ex:
        logger.warning(f"Ignoring invalid objectSid: {ex}")
        return ""


def _changed(old: str, new: str) -> bool:
    return (old or "").lower() != (new or "").lower()


class ADObject:
    """
    Common part of every object living under a base OU.
    """

    RDN_ATTRIBUTE = "CN"
    OBJECT_CLASSES: List[str] = []

    def __init__(self, name: str, base_ou_dn: str, description: str = "",
                 attributes: Optional[Dict[str, List[str]]] = None,
                 guid: str = "", dn: str = ""):
        """
        Args:
            name: Name of the object (value of its RDN)
            base_ou_dn: DN of the OU or container holding the object
            description: Description of the object
            attributes: Extra attributes managed as a map of name -> values
            guid: objectGUID, set once the object exists
            dn: Distinguished name as read from the directory
        """
        self.name = name
        self.base_ou_dn = base_ou_dn
        self.description = description or ""
        self.attributes = dict(attributes or {})
        self.guid = guid
        self.dn = dn

    @property
    def rdn(self) -> str:
        return f"{self.RDN_ATTRIBUTE}={ldap.dn.escape_dn_chars(self.name)}"

    @property
    def target_dn(self) -> str:
        """DN the object has according to its name and base OU."""
        return f"{self.rdn},{self.base_ou_dn}"

    @staticmethod
    def _common_from_entry(dn: str, attrs: Mapping[str, Sequence],
                           desired_attributes: Optional[Mapping[str, Sequence[str]]]) -> dict:
        distinguished_name = get_attribute_value(attrs, 'distinguishedName') or dn
        return {
            'name': get_attribute_value(attrs, 'name'),
            'base_ou_dn': parent_dn(distinguished_name),
            'description': get_attribute_value(attrs, 'description'),
            'attributes': read_attributes(attrs, desired_attributes or {}),
            'guid': decode_guid(get_raw_value(attrs, 'objectGUID')),
            'dn': distinguished_name,
        }

    def validate(self, top_dn: str):
        """
        Validates the desired state before it is sent to the directory.

        Raises:
            ValidationError: If a field is invalid
        """
        validate_dn_string(self.base_ou_dn, top_dn)

    def _base_add_attributes(self) -> Dict[str, list]:
        add_attributes = {name: list(values) for name, values in self.attributes.items()}
        add_attributes['objectClass'] = list(self.OBJECT_CLASSES)
        add_attributes['name'] = [self.name]
        if self.description:
            add_attributes['description'] = [self.description]
        return add_attributes

    def to_add_attributes(self) -> Dict[str, list]:
        """Returns the attribute map of the LDAP add request creating this object."""
        return self._base_add_attributes()

    def rename_request(self, old: 'ADObject'):
        """
        Returns the move/rename needed to go from ``old`` to this state.

        Returns:
            Tuple (current_dn, new_rdn, new_superior), or None when the name
            and base OU are unchanged (case-insensitive)
        """
        if not _changed(old.name, self.name) and not _changed(old.base_ou_dn, self.base_ou_dn):
            return None
        logger.debug(f"Name changes old: {old.name}, new: {self.name}")
        logger.debug(f"OU changes old: {old.base_ou_dn}, new: {self.base_ou_dn}")
        return old.target_dn, self.rdn, self.base_ou_dn

    def modify_set(self, old: 'ADObject') -> Dict[str, list]:
        """
        Computes the replace modify-set turning ``old`` into this state.

        Args:
            old: Previous state of the same object

        Returns:
            Map of attribute name -> replacement values (empty list removes)
        """
        changes = {}
        if old.description != self.description:
            changes['description'] = [self.description] if self.description else []
            logger.debug(f"Updating 'description' new: {self.description}")

        for name, values in get_modified_attributes(old.attributes, self.attributes).items():
            changes[name] = values
            logger.debug(f"Replacing attribute {name}, new value: {values}")
        return changes

    def _fields(self) -> List[tuple]:
        return [
            ("name", self.name),
            ("objectGUID", self.guid),
            ("distinguishedName", self.dn or self.target_dn),
            ("description", self.description),
        ]

    def to_string(self) -> str:
        """
        Returns a string representation of the object.

        Returns:
            Formatted string, one field per line
        """
        result = ""
        for label, value in self._fields():
            if isinstance(value, (list, tuple)):
                value = ", ".join(value)
            result += f"{label + ':':<24}{value}\n"
        for name, values in sorted(self.attributes.items()):
            result += f"{name + ':':<24}{', '.join(values)}\n"
        result += "----------------------------------------------\n"
        return result

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name='{self.name}', guid='{self.guid}')"


class ADUser(ADObject):
    """
    A user account.
    """

    OBJECT_CLASSES = USER_OBJECT_CLASSES

    def __init__(self, name: str, base_ou_dn: str, sam_account_name: str, user_principal_name: str,
                 password: Optional[str] = None, enabled: bool = True,
                 first_name: str = "", last_name: str = "",
                 user_account_control: str = "", sid: str = "",
                 member_of: Optional[List[str]] = None, **kwargs):
        super().__init__(name, base_ou_dn, **kwargs)
        self.sam_account_name = sam_account_name
        self.user_principal_name = user_principal_name
        self.password = password
        self.enabled = enabled
        self.first_name = first_name or ""
        self.last_name = last_name or ""
        self.user_account_control = user_account_control
        self.sid = sid
        self.member_of = list(member_of or [])

    @classmethod
    def from_entry(cls, dn: str, attrs: Mapping[str, Sequence],
                   desired_attributes: Optional[Mapping[str, Sequence[str]]] = None) -> 'ADUser':
        """
        Creates an ADUser from a directory entry.

        The password cannot be read back and is left unset.

        Args:
            dn: DN of the entry
            attrs: Entry attributes
            desired_attributes: Extra attributes to reconcile (only their names are used)
        """
        uac = get_attribute_value(attrs, 'userAccountControl')
        return cls(
            sam_account_name=get_attribute_value(attrs, 'sAMAccountName'),
            user_principal_name=get_attribute_value(attrs, 'userPrincipalName'),
            enabled=is_enabled(uac),
            first_name=get_attribute_value(attrs, 'givenName'),
            last_name=get_attribute_value(attrs, 'sn'),
            user_account_control=uac,
            sid=_decode_sid_attribute(attrs),
            member_of=get_attribute_values(attrs, 'memberOf'),
            **cls._common_from_entry(dn, attrs, desired_attributes),
        )

    def validate(self, top_dn: str):
        super().validate(top_dn)
        validate_sam_account_name(self.sam_account_name)
        validate_user_principal_name(self.user_principal_name)
        if self.enabled and not self.password:
            raise ValidationError(
                "user cannot be enabled if password is not set. "
                "either set password or specify argument `enabled = false`"
            )

    def to_add_attributes(self) -> Dict[str, list]:
        if self.enabled and not self.password:
            raise ValidationError("user cannot be enabled if password is not set")

        add_attributes = self._base_add_attributes()
        add_attributes['cn'] = [self.name]
        add_attributes['userPrincipalName'] = [self.user_principal_name]
        add_attributes['sAMAccountName'] = [self.sam_account_name]
        if self.first_name:
            add_attributes['givenName'] = [self.first_name]
        if self.last_name:
            add_attributes['sn'] = [self.last_name]

        # without a password the directory applies its own default flags
        if self.password:
            add_attributes['unicodePwd'] = [encode_password(self.password)]
            add_attributes['userAccountControl'] = [apply_enabled(NORMAL_ACCOUNT_UAC, self.enabled)]
        return add_attributes

    def modify_set(self, old: 'ADUser') -> Dict[str, list]:
        changes = super().modify_set(old)

        if old.enabled != self.enabled:
            uac = apply_enabled(old.user_account_control or NORMAL_ACCOUNT_UAC, self.enabled)
            changes['userAccountControl'] = [uac]
            logger.debug(f"Updating 'userAccountControl' new: {uac}")

        if _changed(old.sam_account_name, self.sam_account_name):
            changes['sAMAccountName'] = [self.sam_account_name]
        if _changed(old.user_principal_name, self.user_principal_name):
            changes['userPrincipalName'] = [self.user_principal_name]
        if old.first_name != self.first_name:
            changes['givenName'] = [self.first_name] if self.first_name else []
        if old.last_name != self.last_name:
            changes['sn'] = [self.last_name] if self.last_name else []

        if self.password != old.password:
            if not self.password:
                raise ValidationError("once set user password cannot be unset or it cant be empty")
            changes['unicodePwd'] = [encode_password(self.password)]
        return changes

    def _fields(self) -> List[tuple]:
        return super()._fields() + [
            ("sAMAccountName", self.sam_account_name),
            ("userPrincipalName", self.user_principal_name),
            ("objectSid", self.sid),
            ("givenName", self.first_name),
            ("sn", self.last_name),
            ("userAccountControl", self.user_account_control),
            ("enabled", str(self.enabled)),
            ("memberOf", self.member_of),
        ]


class ADGroup(ADObject):
    """
    A security or distribution group.
    """

    OBJECT_CLASSES = GROUP_OBJECT_CLASSES

    def __init__(self, name: str, base_ou_dn: str, sam_account_name: str,
                 scope: str = GROUP_SCOPE_GLOBAL, group_type: str = GROUP_TYPE_SECURITY,
                 sid: str = "", members: Optional[List[str]] = None,
                 member_of: Optional[List[str]] = None, **kwargs):
        super().__init__(name, base_ou_dn, **kwargs)
        self.sam_account_name = sam_account_name
        self.scope = scope
        self.group_type = group_type
        self.sid = sid
        self.members = list(members or [])
        self.member_of = list(member_of or [])

    @classmethod
    def from_entry(cls, dn: str, attrs: Mapping[str, Sequence],
                   desired_attributes: Optional[Mapping[str, Sequence[str]]] = None) -> 'ADGroup':
        """
        Raises:
            UnrecognizedGroupTypeError: If groupType holds an unknown value
        """
        scope, group_type = decode_group_type(get_attribute_value(attrs, 'groupType'))
        return cls(
            sam_account_name=get_attribute_value(attrs, 'sAMAccountName'),
            scope=scope,
            group_type=group_type,
            sid=_decode_sid_attribute(attrs),
            members=get_attribute_values(attrs, 'member'),
            member_of=get_attribute_values(attrs, 'memberOf'),
            **cls._common_from_entry(dn, attrs, desired_attributes),
        )

    def validate(self, top_dn: str):
        super().validate(top_dn)
        validate_sam_account_name(self.sam_account_name)
        validate_group_scope(self.scope)
        validate_group_type(self.group_type)

    def to_add_attributes(self) -> Dict[str, list]:
        add_attributes = self._base_add_attributes()
        add_attributes['cn'] = [self.name]
        add_attributes['groupType'] = [encode_group_type(self.scope, self.group_type)]
        add_attributes['sAMAccountName'] = [self.sam_account_name]
        return add_attributes

    def modify_set(self, old: 'ADGroup') -> Dict[str, list]:
        changes = super().modify_set(old)

        if _changed(old.sam_account_name, self.sam_account_name):
            changes['sAMAccountName'] = [self.sam_account_name]

        if old.scope != self.scope or old.group_type != self.group_type:
            group_type_value = encode_group_type(self.scope, self.group_type)
            changes['groupType'] = [group_type_value]
            logger.debug(f"Updating 'groupType' new: {group_type_value}")
        return changes

    def _fields(self) -> List[tuple]:
        return super()._fields() + [
            ("sAMAccountName", self.sam_account_name),
            ("objectSid", self.sid),
            ("scope", self.scope),
            ("type", self.group_type),
            ("member", self.members),
            ("memberOf", self.member_of),
        ]


class ADComputer(ADObject):
    """
    A computer account.
    """

    OBJECT_CLASSES = COMPUTER_OBJECT_CLASSES

    def __init__(self, name: str, base_ou_dn: str, sam_account_name: str, enabled: bool = True,
                 user_account_control: str = "", sid: str = "",
                 member_of: Optional[List[str]] = None, **kwargs):
        super().__init__(name, base_ou_dn, **kwargs)
        self.sam_account_name = sam_account_name
        self.enabled = enabled
        self.user_account_control = user_account_control
        self.sid = sid
        self.member_of = list(member_of or [])

    @classmethod
    def from_entry(cls, dn: str, attrs: Mapping[str, Sequence],
                   desired_attributes: Optional[Mapping[str, Sequence[str]]] = None) -> 'ADComputer':
        uac = get_attribute_value(attrs, 'userAccountControl')
        return cls(
            sam_account_name=get_attribute_value(attrs, 'sAMAccountName'),
            enabled=is_enabled(uac),
            user_account_control=uac,
            sid=_decode_sid_attribute(attrs),
            member_of=get_attribute_values(attrs, 'memberOf'),
            **cls._common_from_entry(dn, attrs, desired_attributes),
        )

    def validate(self, top_dn: str):
        super().validate(top_dn)
        validate_sam_account_name(self.sam_account_name, computer=True)

    def to_add_attributes(self) -> Dict[str, list]:
        uac = self.user_account_control or WORKSTATION_TRUST_ACCOUNT_UAC

        add_attributes = self._base_add_attributes()
        add_attributes['cn'] = [self.name]
        add_attributes['sAMAccountName'] = [self.sam_account_name]
        add_attributes['userAccountControl'] = [apply_enabled(uac, self.enabled)]
        return add_attributes

    def modify_set(self, old: 'ADComputer') -> Dict[str, list]:
        changes = super().modify_set(old)

        if old.enabled != self.enabled:
            uac = apply_enabled(old.user_account_control or WORKSTATION_TRUST_ACCOUNT_UAC, self.enabled)
            changes['userAccountControl'] = [uac]
            logger.debug(f"Updating 'userAccountControl' new: {uac}")

        if _changed(old.sam_account_name, self.sam_account_name):
            changes['sAMAccountName'] = [self.sam_account_name]
        return changes

    def _fields(self) -> List[tuple]:
        return super()._fields() + [
            ("sAMAccountName", self.sam_account_name),
            ("objectSid", self.sid),
            ("userAccountControl", self.user_account_control),
            ("enabled", str(self.enabled)),
            ("memberOf", self.member_of),
        ]


class ADOrganizationalUnit(ADObject):
    """
    An organizational unit.
    """

    RDN_ATTRIBUTE = "OU"
    OBJECT_CLASSES = OU_OBJECT_CLASSES

    def __init__(self, name: str, base_ou_dn: str, ou: str = "", **kwargs):
        super().__init__(name, base_ou_dn, **kwargs)
        self.ou = ou

    @classmethod
    def from_entry(cls, dn: str, attrs: Mapping[str, Sequence],
                   desired_attributes: Optional[Mapping[str, Sequence[str]]] = None) -> 'ADOrganizationalUnit':
        return cls(
            ou=get_attribute_value(attrs, 'ou'),
            **cls._common_from_entry(dn, attrs, desired_attributes),
        )

    def to_add_attributes(self) -> Dict[str, list]:
        add_attributes = self._base_add_attributes()
        add_attributes['ou'] = [self.name]
        return add_attributes

    def _fields(self) -> List[tuple]:
        return super()._fields() + [("ou", self.ou)]


class ADGroupMembers:
    """
    The member list of an existing group, managed as a whole.
    """

    def __init__(self, group_dn: str, members: Sequence[str], guid: str = ""):
        self.group_dn = group_dn
        self.members = list(members)
        self.guid = guid

    @classmethod
    def from_entry(cls, dn: str, attrs: Mapping[str, Sequence]) -> 'ADGroupMembers':
        return cls(
            group_dn=get_attribute_value(attrs, 'distinguishedName') or dn,
            members=get_attribute_values(attrs, 'member'),
            guid=decode_guid(get_raw_value(attrs, 'objectGUID')),
        )

    def validate(self, top_dn: str):
        validate_dn_string(self.group_dn, top_dn)
        invalid = [member for member in self.members if not is_valid_dn(member)]
        if invalid:
            raise ValidationError(f"member entry should be valid DN, got value:{invalid}")

    def modify_set(self, old: Optional['ADGroupMembers'] = None) -> Dict[str, list]:
        """
        Returns the replace modify-set setting the member list.

        Raises:
            ValidationError: If the group DN differs from the previous state
        """
        if old is not None and _changed(old.group_dn, self.group_dn):
            raise ValidationError("group members will not make any changes to group DN, "
                                  "group_dn is only used as reference")
        if old is not None and membership_changes(old.members, self.members) == ([], []):
            return {}
        return {'member': list(self.members)}

    def __repr__(self) -> str:
        return f"ADGroupMembers(group_dn='{self.group_dn}', members={len(self.members)})"


class ADObjectMemberOf:
    """
    The groups one object belongs to.
    """

    def __init__(self, object_dn: str, member_of: Sequence[str], guid: str = ""):
        self.object_dn = object_dn
        self.member_of = list(member_of)
        self.guid = guid

    @classmethod
    def from_entry(cls, dn: str, attrs: Mapping[str, Sequence]) -> 'ADObjectMemberOf':
        return cls(
            object_dn=get_attribute_value(attrs, 'distinguishedName') or dn,
            member_of=get_attribute_values(attrs, 'memberOf'),
            guid=decode_guid(get_raw_value(attrs, 'objectGUID')),
        )

    def validate(self, top_dn: str):
        for group_dn in self.member_of:
            validate_dn_string(group_dn, top_dn)

    def group_changes(self, old: 'ADObjectMemberOf'):
        """
        Returns the groups to join and to leave.

        Returns:
            Tuple (groups_to_join, groups_to_leave)
        """
        if _changed(old.object_dn, self.object_dn):
            raise ValidationError("object member of will not make any changes to object DN, "
                                  "object_dn is only used as reference")
        return membership_changes(old.member_of, self.member_of)

    def __repr__(self) -> str:
        return f"ADObjectMemberOf(object_dn='{self.object_dn}', groups={len(self.member_of)})"
