"""
Constants for ad_objects.
Centralized module for all project constants.
"""

# userAccountControl: ACCOUNTDISABLE bit
ACCOUNT_DISABLED_FLAG = 2

# Default userAccountControl values
NORMAL_ACCOUNT_UAC = "512"
WORKSTATION_TRUST_ACCOUNT_UAC = "4096"

# groupType scope flags
GLOBAL_SCOPE_FLAG = 2
DOMAIN_LOCAL_SCOPE_FLAG = 4
UNIVERSAL_SCOPE_FLAG = 8

# groupType security flag (high bit of a signed 32-bit integer)
SECURITY_GROUP_FLAG = 2147483648

# Group scopes and types
GROUP_SCOPE_GLOBAL = "global"
GROUP_SCOPE_DOMAIN_LOCAL = "domain_local"
GROUP_SCOPE_UNIVERSAL = "universal"
GROUP_SCOPES = [GROUP_SCOPE_DOMAIN_LOCAL, GROUP_SCOPE_GLOBAL, GROUP_SCOPE_UNIVERSAL]

GROUP_TYPE_SECURITY = "security"
GROUP_TYPE_DISTRIBUTION = "distribution"
GROUP_TYPES = [GROUP_TYPE_SECURITY, GROUP_TYPE_DISTRIBUTION]

# Binary sizes
GUID_SIZE = 16
SID_HEADER_SIZE = 8
SID_SUB_AUTHORITY_SIZE = 4
SID_MAX_SUB_AUTHORITIES = 255

# sAMAccountName is limited to 20 characters
SAM_ACCOUNT_NAME_MAX_LENGTH = 20

# Object classes used in add requests
USER_OBJECT_CLASSES = ["organizationalPerson", "person", "top", "user"]
GROUP_OBJECT_CLASSES = ["group"]
COMPUTER_OBJECT_CLASSES = ["computer"]
OU_OBJECT_CLASSES = ["organizationalUnit"]

# LDAP network timeout (seconds)
LDAP_TIMEOUT = 10
