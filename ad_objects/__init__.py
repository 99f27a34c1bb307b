"""
ad_objects Python Package

Manages Active Directory users, groups, computers, organizational units and
group memberships over LDAP: binary attribute codecs (objectGUID, objectSid,
userAccountControl, groupType), attribute diffing and DN validation.
"""

__version__ = "1.0.0"
__description__ = "Declarative management of Active Directory objects over LDAP"

# Main imports
from .guid import decode_guid, encode_guid
from .sid import decode_sid, encode_sid
from .account_control import is_enabled, set_disabled_flag, unset_disabled_flag
from .group_type import decode_group_type, encode_group_type
from .attributes import get_modified_attributes
from .dn import validate_dn_string
from .ad_object import ADUser, ADGroup, ADComputer, ADOrganizationalUnit, ADGroupMembers, ADObjectMemberOf
from .ldap_utils import ADClient, LdapConnection
from .errors import (
    ADObjectsError, FormatError, ParseError, UnrecognizedGroupTypeError, ValidationError,
    ObjectNotFoundError, DirectoryError,
)
from . import config

__all__ = [
    'decode_guid',
    'encode_guid',
    'decode_sid',
    'encode_sid',
    'is_enabled',
    'set_disabled_flag',
    'unset_disabled_flag',
    'decode_group_type',
    'encode_group_type',
    'get_modified_attributes',
    'validate_dn_string',
    'ADUser',
    'ADGroup',
    'ADComputer',
    'ADOrganizationalUnit',
    'ADGroupMembers',
    'ADObjectMemberOf',
    'ADClient',
    'LdapConnection',
    'ADObjectsError',
    'FormatError',
    'ParseError',
    'UnrecognizedGroupTypeError',
    'ValidationError',
    'ObjectNotFoundError',
    'DirectoryError',
    'config'
]
