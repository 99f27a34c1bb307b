"""
Distinguished name validation and helpers.
"""

import logging

import ldap
import ldap.dn

from .errors import ValidationError

logger = logging.getLogger(__name__)


def domain_to_dn(domain: str) -> str:
    """
    Converts a domain name to its distinguished name.

    Args:
        domain: Domain name (e.g., 'example.com')

    Returns:
        Distinguished name in lowercase (e.g., 'dc=example,dc=com')
    """
    return ','.join([f'dc={part}' for part in domain.lower().split('.')])


def _parse_error(dn: str):
    """Returns the parser error for ``dn``, or None when it is a valid DN."""
    try:
        ldap.dn.str2dn(dn)
    except (ldap.DECODING_ERROR, TypeError, ValueError) as ex:
        return ex
    return None


def is_valid_dn(dn: str) -> bool:
    return _parse_error(dn) is None


def _ends_with_dn(dn: str, suffix: str) -> bool:
    """
    Tells whether ``dn`` is ``suffix`` or lies below it, case-insensitively.

    The suffix must start on an RDN boundary: an unescaped comma.
    """
    dn, suffix = dn.lower(), suffix.lower()
    if dn == suffix:
        return True
    if not suffix or not dn.endswith(suffix):
        return False

    head = dn[:-len(suffix)]
    if not head.endswith(','):
        return False
    # an odd number of backslashes escapes the comma
    backslashes = len(head[:-1]) - len(head[:-1].rstrip('\\'))
    return backslashes % 2 == 0


def _check_dn(dn: str, suffix: str, label: str, suffix_label: str):
    problems = []
    if not _ends_with_dn(dn, suffix):
        problems.append(f"{label} should end with {suffix_label} {suffix!r}")

    parse_error = _parse_error(dn.lower())
    if parse_error is not None:
        problems.append(f"{label} is not a valid DN err: {parse_error}")

    if problems:
        raise ValidationError(f"error: {' : '.join(problems)}, got: {dn}")


def validate_dn_string(dn: str, top_dn: str):
    """
    Validates that a DN is well formed and lives under the top DN.

    Both checks always run and their failures are reported together.

    Args:
        dn: Distinguished name to check (e.g. an object's base OU)
        top_dn: DN every managed object must descend from

    Raises:
        ValidationError: If the DN does not end with the top DN or does not parse
    """
    _check_dn(dn, top_dn, "full ou path", "top dn")


def validate_top_dn(domain_dn: str, top_dn: str):
    """
    Validates the configured top DN against the domain components.

    Raises:
        ValidationError: If the top DN does not end with the domain DN or does not parse
    """
    _check_dn(top_dn, domain_dn, "top_dn", "domain component")


def parent_dn(dn: str) -> str:
    """
    Returns the DN of the container holding ``dn``.

    Escaped commas inside the first RDN are honoured.
    """
    rdns = ldap.dn.str2dn(dn)
    return ldap.dn.dn2str(rdns[1:])


def rdn_value(dn: str) -> str:
    """Returns the value of the first RDN (``CN=John Doe,OU=x`` -> ``John Doe``)."""
    rdns = ldap.dn.str2dn(dn)
    return rdns[0][0][1]
