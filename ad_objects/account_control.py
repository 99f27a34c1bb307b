"""
userAccountControl flag handling.

The attribute is transported as a decimal string; only the ACCOUNTDISABLE bit
is interpreted here.
"""

from .config import ACCOUNT_DISABLED_FLAG
from .numeric import parse_uint


def _parse_uac(user_account_control: str) -> int:
    return parse_uint(user_account_control, 64, "userAccountControl")


def is_enabled(user_account_control: str) -> bool:
    """
    Tells whether the ACCOUNTDISABLE bit is clear.

    Raises:
        ParseError: If the value is not an unsigned 64-bit decimal string
    """
    return not _parse_uac(user_account_control) & ACCOUNT_DISABLED_FLAG


def set_disabled_flag(user_account_control: str) -> str:
    """Returns the value with the ACCOUNTDISABLE bit set."""
    return str(_parse_uac(user_account_control) | ACCOUNT_DISABLED_FLAG)


def unset_disabled_flag(user_account_control: str) -> str:
    """Returns the value with the ACCOUNTDISABLE bit cleared."""
    return str(_parse_uac(user_account_control) & ~ACCOUNT_DISABLED_FLAG)


def apply_enabled(user_account_control: str, enabled: bool) -> str:
    """
    Adjusts a userAccountControl value to match the requested status.

    Args:
        user_account_control: Current value (decimal string)
        enabled: Requested account status

    Returns:
        The value with the ACCOUNTDISABLE bit matching ``enabled``, normalized
        to its plain decimal form
    """
    if enabled:
        return unset_disabled_flag(user_account_control)
    return set_disabled_flag(user_account_control)
