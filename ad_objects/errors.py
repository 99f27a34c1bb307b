"""
Exceptions raised by ad_objects.
"""


class ADObjectsError(Exception):
    """Base class for every error raised by this package."""


class FormatError(ADObjectsError, ValueError):
    """Malformed binary input (wrong GUID length, truncated SID, invalid hex)."""


class ParseError(ADObjectsError, ValueError):
    """A string does not parse as the expected unsigned integer."""


class UnrecognizedGroupTypeError(ADObjectsError, ValueError):
    """A groupType value matches none of the known scope/type combinations."""


class ValidationError(ADObjectsError, ValueError):
    """An object definition or distinguished name failed validation."""


class ObjectNotFoundError(ADObjectsError):
    """The directory holds no object for the given DN or GUID."""


class DirectoryError(ADObjectsError):
    """
    An LDAP operation failed.

    Attributes:
        operation: Name of the failed operation
        dn: Distinguished name the operation targeted
    """

    def __init__(self, operation: str, dn: str, cause: Exception):
        self.operation = operation
        self.dn = dn
        self.cause = cause
        super().__init__(f"{operation} failed for dn:{dn} err:{cause}")
