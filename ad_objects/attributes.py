"""
Attribute map handling: diffing, JSON validation and read-back from entries.

An attribute map is a dict of attribute name -> list of string values. Value
order is not significant (RFC 4511, 4.1.7) but duplicates are.
"""

import json
import logging
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from .errors import ValidationError

logger = logging.getLogger(__name__)

AttributeMap = Dict[str, List[str]]


def compare_attr_values(old: Sequence[str], new: Sequence[str]) -> bool:
    """
    Compares two value lists as multisets.

    Sorted copies are compared, the caller's lists are left untouched.
    """
    if len(old) != len(new):
        return False
    return sorted(old) == sorted(new)


def get_modified_attributes(old_attr_map: Mapping[str, Sequence[str]],
                            new_attr_map: Mapping[str, Sequence[str]]) -> AttributeMap:
    """
    Computes the attributes to send as LDAP replace operations.

    Args:
        old_attr_map: Previous attribute map
        new_attr_map: Desired attribute map

    Returns:
        Map of attribute name -> values to replace with. Added and changed
        attributes carry the new values, removed attributes an empty list.
        Unchanged attributes are omitted.
    """
    replaced = {}

    for name, values in new_attr_map.items():
        if name not in old_attr_map:
            replaced[name] = list(values)
        elif not compare_attr_values(old_attr_map[name], values):
            replaced[name] = list(values)

    for name in old_attr_map:
        if name not in new_attr_map:
            replaced[name] = []

    return replaced


def validate_attributes_json(value: str, key: str = "attributes") -> List[str]:
    """
    Checks that a JSON document is a map of attribute name -> non-empty list of strings.

    Args:
        value: JSON text
        key: Argument name used in error messages

    Returns:
        List of error messages, empty when the document is valid
    """
    errors = []
    try:
        data = json.loads(value)
    except (TypeError, ValueError):
        data = None

    if not isinstance(data, dict) or not all(
            isinstance(values, list) and all(isinstance(v, str) for v in values)
            for values in data.values()):
        return [
            f'{key!r} must be valid json of map with string key and array of string as value '
            f'ie. {{key = ["value"]}}, got: {value}'
        ]

    for name, values in data.items():
        if not values:
            errors.append(f"attributes values should not be empty. value of attribute {name!r} got: {values}")
    return errors


def load_attributes(value: str, key: str = "attributes") -> AttributeMap:
    """
    Parses an attributes JSON document.

    Raises:
        ValidationError: If the document is invalid (all problems in one message)
    """
    errors = validate_attributes_json(value, key)
    if errors:
        raise ValidationError("; ".join(errors))
    return json.loads(value)


def normalize_attributes_json(value: str) -> str:
    """
    Returns the attributes JSON with every value list sorted.

    The directory does not guarantee the order of returned values, so stored
    state keeps them sorted.
    """
    data = json.loads(value)
    return json.dumps({name: sorted(values) for name, values in data.items()}, sort_keys=True)


def decode_value(value) -> str:
    """Decodes a raw attribute value; binary values that are not UTF-8 come back as uppercase hex."""
    if isinstance(value, bytes):
        try:
            return value.decode('utf-8')
        except UnicodeDecodeError:
            return value.hex().upper()
    return str(value)


def get_attribute_values(entry_attrs: Mapping[str, Sequence], name: str) -> List[str]:
    """
    Returns the values of an entry attribute as strings.

    Attribute names are matched case-insensitively; a missing attribute
    yields an empty list.
    """
    if name in entry_attrs:
        return [decode_value(v) for v in entry_attrs[name]]

    lowered = name.lower()
    for key, values in entry_attrs.items():
        if key.lower() == lowered:
            return [decode_value(v) for v in values]
    return []


def get_attribute_value(entry_attrs: Mapping[str, Sequence], name: str) -> str:
    """Returns the first value of an entry attribute, or an empty string."""
    values = get_attribute_values(entry_attrs, name)
    return values[0] if values else ""


def read_attributes(entry_attrs: Mapping[str, Sequence], names: Iterable[str]) -> AttributeMap:
    """
    Reads back the current remote values of the given attributes.

    Args:
        entry_attrs: Entry attributes as returned by the directory
        names: Attribute names the caller manages

    Returns:
        Attribute map holding, for every name, the entry's values
    """
    current = {}
    for name in names:
        current[name] = get_attribute_values(entry_attrs, name)
        logger.debug(f"Read attribute {name}: {current[name]}")
    return current


def get_raw_value(entry_attrs: Mapping[str, Sequence], name: str):
    """Returns the first raw (undecoded) value of an entry attribute, or None."""
    lowered = name.lower()
    for key, values in entry_attrs.items():
        if key.lower() == lowered and values:
            return values[0]
    return None


def membership_changes(old: Iterable[str], new: Iterable[str]) -> Tuple[List[str], List[str]]:
    """
    Compares two sets of DNs case-insensitively.

    Returns:
        Tuple (to_add, to_remove): DNs only present in ``new`` and DNs only
        present in ``old``, in their original spelling
    """
    old_by_key = {dn.lower(): dn for dn in old}
    new_by_key = {dn.lower(): dn for dn in new}

    to_add = [dn for key, dn in new_by_key.items() if key not in old_by_key]
    to_remove = [dn for key, dn in old_by_key.items() if key not in new_by_key]
    return to_add, to_remove
