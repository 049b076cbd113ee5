# Overview: Permission definitions and the default role -> permission mapping.
# Each permission is defined as: (code, name, description)

from .models.auth import ROLE_ADMIN, ROLE_VENDOR, ROLE_TEAM_LEADER, ROLE_WORKER


PERMISSION_DEFINITIONS = [
    # -- USERS --
    ("VIEW_USERS", "View Users", "List users within the caller's hierarchy"),
    ("CREATE_USERS", "Create Users", "Create users of any role (pre-approved)"),
    ("APPROVE_USERS", "Approve Users", "Toggle approval on any user"),
    ("APPROVE_TEAM_LEADERS", "Approve Team Leaders", "Approve or reject pending team leaders of the vendor"),
    ("CREATE_WORKERS", "Create Workers", "Create pending workers under the team leader"),
    ("ISSUE_OTP", "Issue OTP", "Issue and verify worker approval OTPs"),
    # -- WAREHOUSE --
    ("VIEW_BINS", "View Bins", "List bins of the caller's warehouse"),
    ("MANAGE_BINS", "Manage Bins", "Register bins in any warehouse"),
    # -- COUNTING --
    ("COUNT_BINS", "Count Bins", "Run counting sessions and record bin counts"),
    ("VIEW_RECORDS", "View Records", "View counting records of other users"),
    ("VIEW_EFFICIENCY", "View Efficiency", "View worker efficiency rows"),
]

PERMISSION_CODES = frozenset(code for code, _, _ in PERMISSION_DEFINITIONS)


ROLE_PERMISSIONS = {
    ROLE_ADMIN: PERMISSION_CODES - {"COUNT_BINS", "CREATE_WORKERS", "ISSUE_OTP", "APPROVE_TEAM_LEADERS"},
    ROLE_VENDOR: frozenset({
        "VIEW_USERS",
        "APPROVE_TEAM_LEADERS",
        "VIEW_BINS",
        "VIEW_RECORDS",
        "VIEW_EFFICIENCY",
    }),
    ROLE_TEAM_LEADER: frozenset({
        "VIEW_USERS",
        "CREATE_WORKERS",
        "ISSUE_OTP",
        "VIEW_BINS",
        "VIEW_RECORDS",
        "VIEW_EFFICIENCY",
    }),
    ROLE_WORKER: frozenset({
        "VIEW_BINS",
        "COUNT_BINS",
    }),
}


def permissions_for_role(role: str) -> frozenset[str]:
    return ROLE_PERMISSIONS.get(role, frozenset())
