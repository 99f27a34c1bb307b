#!/usr/bin/env python3
"""
ad_objects - Active Directory object tool.

Usage:
    python main.py guid [options]
    python main.py sid [options]
    python main.py uac [options]
    python main.py grouptype [options]
    python main.py diff [options]
    python main.py validate-dn [options]
    python main.py objectinfo [options]
"""

import argparse
import json
import logging
import sys
import traceback

from ad_objects.account_control import is_enabled, set_disabled_flag, unset_disabled_flag
from ad_objects.ad_object import ADComputer, ADGroup, ADOrganizationalUnit, ADUser
from ad_objects.attributes import get_attribute_values, get_modified_attributes, load_attributes
from ad_objects.dn import domain_to_dn, validate_dn_string
from ad_objects.errors import ADObjectsError, ValidationError
from ad_objects.group_type import decode_group_type, encode_group_type
from ad_objects.guid import decode_guid, encode_guid
from ad_objects.ldap_utils import ADClient, LdapConnection
from ad_objects.sid import decode_sid, encode_sid

logger = logging.getLogger(__name__)

COMMANDS = ['guid', 'sid', 'uac', 'grouptype', 'diff', 'validate-dn', 'objectinfo']


def setup_logging(verbose: bool = False):
    """Configures logging for the application."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )


def _hex_to_bytes(value: str) -> bytes:
    try:
        return bytes.fromhex(value)
    except ValueError as ex:
        raise ValidationError(f"invalid hex value {value!r}: {ex}") from ex


def process_guid(args):
    """Handles the guid command."""
    if args.decode:
        print(decode_guid(_hex_to_bytes(args.decode)))
    else:
        print(encode_guid(args.encode))


def process_sid(args):
    """Handles the sid command."""
    if args.decode:
        print(decode_sid(_hex_to_bytes(args.decode)))
    else:
        print(encode_sid(args.encode))


def process_uac(args):
    """Handles the uac command."""
    if args.enable:
        print(unset_disabled_flag(args.value))
    elif args.disable:
        print(set_disabled_flag(args.value))
    else:
        print("enabled" if is_enabled(args.value) else "disabled")


def process_group_type(args):
    """Handles the grouptype command."""
    if args.decode:
        scope, group_type = decode_group_type(args.decode)
        print(f"scope: {scope}\ntype:  {group_type}")
    else:
        print(encode_group_type(args.scope, args.type))


def process_diff(args):
    """Handles the diff command."""
    old = load_attributes(args.old, "old")
    new = load_attributes(args.new, "new")
    print(json.dumps(get_modified_attributes(old, new), indent=2, sort_keys=True))


def process_validate_dn(args):
    """Handles the validate-dn command."""
    top_dn = args.top_dn or domain_to_dn(args.domain or "")
    validate_dn_string(args.dn, top_dn)
    print(f"{args.dn} is valid")


MODELS = {
    'user': ADUser,
    'group': ADGroup,
    'computer': ADComputer,
    'organizationalunit': ADOrganizationalUnit,
}


def _model_for(attrs):
    object_classes = [c.lower() for c in get_attribute_values(attrs, 'objectClass')]
    # computer entries also carry the user class
    for object_class in ['computer', 'group', 'organizationalunit', 'user']:
        if object_class in object_classes:
            return MODELS[object_class]
    return None


def process_object_info(args, client: ADClient):
    """Handles the objectinfo command."""
    desired = load_attributes(args.attributes) if args.attributes else {}

    if args.guid:
        entries = [client.get_object_by_id(args.guid)]
    elif args.dn:
        entries = [client.get_object_by_dn(args.dn)]
    else:
        entries = client.get_objects_by_sam(args.sam)
        if not entries:
            print(f"No object with sAMAccountName {args.sam} under {client.top_dn}")
            return

    for dn, attrs in entries:
        model = _model_for(attrs)
        if model is None:
            print(f"{dn}: unsupported object class {get_attribute_values(attrs, 'objectClass')}")
            continue
        print(model.from_entry(dn, attrs, desired).to_string())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="ad_objects - Active Directory object codecs and lookups",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:

# Decode a raw objectGUID
python main.py guid --decode 52234B1739997B4A996C4F605D078DF5

# Encode a SID to its binary layout
python main.py sid --encode S-1-5-21-3184940112-3977852841-221537619-1157

# Disable an account's userAccountControl value
python main.py uac 512 --disable

# groupType of a universal security group
python main.py grouptype --scope universal --type security

# Attributes to replace between two states
python main.py diff '{"department": ["IT"]}' '{"department": ["IT Update"]}'

# Look up an object
python main.py objectinfo --ldap-url ldaps://dc01:636 -d example.com \\
    -u admin@example.com -p Password123 --sam jdoe
        """
    )

    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable detailed debug messages')

    conn_group = parser.add_argument_group('Connection')
    conn_group.add_argument('--ldap-url', type=str,
                            help='LDAP URL, ldap://[IP]:389 or ldaps://[IP]:636')
    conn_group.add_argument('-d', '--domain', type=str,
                            help='AD domain (FQDN)')
    conn_group.add_argument('--top-dn', type=str,
                            help='DN all managed objects live under (default: domain DN)')
    conn_group.add_argument('-u', '--username', type=str,
                            help='Bind username (user@domain.com or DN)')
    conn_group.add_argument('-p', '--password', type=str,
                            help='Bind password')
    conn_group.add_argument('--insecure-tls', action='store_true',
                            help='Skip LDAP server certificate verification')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    guid_parser = subparsers.add_parser('guid', help='Convert objectGUID values')
    guid_group = guid_parser.add_mutually_exclusive_group(required=True)
    guid_group.add_argument('--decode', type=str, help='Raw objectGUID as hex')
    guid_group.add_argument('--encode', type=str, help='GUID string')

    sid_parser = subparsers.add_parser('sid', help='Convert objectSid values')
    sid_group = sid_parser.add_mutually_exclusive_group(required=True)
    sid_group.add_argument('--decode', type=str, help='Raw objectSid as hex')
    sid_group.add_argument('--encode', type=str, help='SID string (S-1-5-...)')

    uac_parser = subparsers.add_parser('uac', help='Inspect or change userAccountControl')
    uac_parser.add_argument('value', type=str, help='userAccountControl decimal value')
    uac_action = uac_parser.add_mutually_exclusive_group()
    uac_action.add_argument('--enable', action='store_true', help='Clear the disabled flag')
    uac_action.add_argument('--disable', action='store_true', help='Set the disabled flag')

    gt_parser = subparsers.add_parser('grouptype', help='Convert groupType values')
    gt_parser.add_argument('--decode', type=str, help='groupType decimal value')
    gt_parser.add_argument('--scope', choices=['domain_local', 'global', 'universal'], default='global')
    gt_parser.add_argument('--type', choices=['security', 'distribution'], default='security')

    diff_parser = subparsers.add_parser('diff', help='Compute the attributes to replace')
    diff_parser.add_argument('old', type=str, help='Previous attributes as JSON')
    diff_parser.add_argument('new', type=str, help='Desired attributes as JSON')

    dn_parser = subparsers.add_parser('validate-dn', help='Validate a DN against the top DN')
    dn_parser.add_argument('dn', type=str, help='Distinguished name to validate')

    info_parser = subparsers.add_parser('objectinfo', help='Query an AD object')
    info_target = info_parser.add_mutually_exclusive_group(required=True)
    info_target.add_argument('-g', '--guid', type=str, help='objectGUID of the object')
    info_target.add_argument('--dn', type=str, help='Distinguished name of the object')
    info_target.add_argument('-s', '--sam', type=str, help='sAMAccountName of the object')
    info_parser.add_argument('--attributes', type=str,
                             help='JSON map of extra attributes to read back')

    return parser


def main(argv=None):
    """Main entry point of the application."""
    parser = build_parser()

    raw_args = list(sys.argv[1:] if argv is None else argv)
    # Commands are case-insensitive
    for i, arg in enumerate(raw_args):
        if arg.lower() in COMMANDS:
            raw_args[i] = arg.lower()
            break

    args = parser.parse_args(raw_args)
    setup_logging(args.verbose)

    if not args.command:
        parser.print_help()
        return 0

    try:
        if args.command == 'guid':
            process_guid(args)
        elif args.command == 'sid':
            process_sid(args)
        elif args.command == 'uac':
            process_uac(args)
        elif args.command == 'grouptype':
            process_group_type(args)
        elif args.command == 'diff':
            process_diff(args)
        elif args.command == 'validate-dn':
            if not args.top_dn and not args.domain:
                parser.error("validate-dn requires --top-dn or --domain")
            process_validate_dn(args)
        elif args.command == 'objectinfo':
            if not (args.ldap_url and args.domain and args.username and args.password):
                parser.error("objectinfo requires --ldap-url, --domain, --username and --password")
            connection = LdapConnection(
                ldap_url=args.ldap_url,
                domain=args.domain,
                bind_username=args.username,
                bind_password=args.password,
                top_dn=args.top_dn,
                insecure_tls=args.insecure_tls,
            )
            with connection:
                process_object_info(args, ADClient(connection))
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 1
    except ADObjectsError as ex:
        print(f"ERROR: {ex}")
        if args.verbose:
            traceback.print_exc()
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
