"""
Sensitive Action Gate
=====================
Actions that require step-up verification.
"""

from enum import Enum


class SensitiveAction(str, Enum):
    LOAN_APPLICATION = "loan_application"
    LOAN_APPROVAL = "loan_approval"
    WITHDRAWAL = "withdrawal"
    FUND_RELEASE = "fund_release"
    ADMIN_ACTION = "admin_action"
    ROLE_CHANGE = "role_change"
    LAND_APPROVAL = "land_approval"
    DISPUTE_RESOLUTION = "dispute_resolution"
    ESCROW_RELEASE = "escrow_release"
    SELLER_APPROVAL = "seller_approval"


SENSITIVE_ACTIONS = frozenset(action.value for action in SensitiveAction)


def requires_mfa(action_name: str) -> bool:
    """True only for actions in the fixed sensitive set."""
    return action_name in SENSITIVE_ACTIONS
