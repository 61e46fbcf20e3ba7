"""
State machine enums and helpers for refund models.
"""

from payments.state_machines.states import (
    TERMINAL_STATUSES,
    BillType,
    RefundSpeed,
    RefundStatus,
)

__all__ = [
    "TERMINAL_STATUSES",
    "BillType",
    "RefundSpeed",
    "RefundStatus",
]
