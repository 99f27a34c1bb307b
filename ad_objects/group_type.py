"""
groupType encoding.

groupType is a signed 32-bit integer combining a scope flag (2, 4 or 8) with
the security flag (high bit). Decoding goes through an explicit lookup table
instead of bit arithmetic because of the two's-complement wraparound.
"""

from typing import Tuple

from .config import (
    GLOBAL_SCOPE_FLAG, DOMAIN_LOCAL_SCOPE_FLAG, UNIVERSAL_SCOPE_FLAG, SECURITY_GROUP_FLAG,
    GROUP_SCOPE_GLOBAL, GROUP_SCOPE_DOMAIN_LOCAL, GROUP_SCOPE_UNIVERSAL, GROUP_SCOPES,
    GROUP_TYPE_SECURITY, GROUP_TYPE_DISTRIBUTION, GROUP_TYPES,
)
from .errors import UnrecognizedGroupTypeError, ValidationError

SCOPE_FLAGS = {
    GROUP_SCOPE_GLOBAL: GLOBAL_SCOPE_FLAG,
    GROUP_SCOPE_DOMAIN_LOCAL: DOMAIN_LOCAL_SCOPE_FLAG,
    GROUP_SCOPE_UNIVERSAL: UNIVERSAL_SCOPE_FLAG,
}

GROUP_TYPE_VALUES = {
    "-2147483644": (GROUP_SCOPE_DOMAIN_LOCAL, GROUP_TYPE_SECURITY),
    "-2147483640": (GROUP_SCOPE_UNIVERSAL, GROUP_TYPE_SECURITY),
    "-2147483646": (GROUP_SCOPE_GLOBAL, GROUP_TYPE_SECURITY),
    "2": (GROUP_SCOPE_GLOBAL, GROUP_TYPE_DISTRIBUTION),
    "4": (GROUP_SCOPE_DOMAIN_LOCAL, GROUP_TYPE_DISTRIBUTION),
    "8": (GROUP_SCOPE_UNIVERSAL, GROUP_TYPE_DISTRIBUTION),
}


def encode_group_type(scope: str, group_type: str) -> str:
    """
    Computes the groupType value for a scope and a type.

    Scope and type are expected to be validated already; an unknown scope
    contributes no flag.

    Args:
        scope: 'global', 'domain_local' or 'universal'
        group_type: 'security' or 'distribution'

    Returns:
        groupType as a signed decimal string
    """
    flags = SCOPE_FLAGS.get(scope, 0)

    if group_type == GROUP_TYPE_SECURITY:
        return str(flags - SECURITY_GROUP_FLAG)
    return str(flags)


def decode_group_type(value: str) -> Tuple[str, str]:
    """
    Returns the (scope, type) pair encoded by a groupType value.

    Raises:
        UnrecognizedGroupTypeError: If the value is not one of the six known
            combinations
    """
    try:
        return GROUP_TYPE_VALUES[str(value)]
    except KeyError:
        raise UnrecognizedGroupTypeError(
            f"unable to get scope or type for given group type value: {value}"
        ) from None


def validate_group_scope(scope: str):
    if scope not in GROUP_SCOPES:
        raise ValidationError(
            f"invalid value provided for 'scope' argument, allowed values are "
            f"'domain_local','global', and 'universal', got value: {scope}"
        )


def validate_group_type(group_type: str):
    if group_type not in GROUP_TYPES:
        raise ValidationError(
            f"invalid value provided for 'type' argument, allowed values are "
            f"'security' and 'distribution', got value: {group_type}"
        )
