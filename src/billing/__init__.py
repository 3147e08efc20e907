"""
Billing: credit gating for paid AI operations.
"""

from .credit_gate import (
    OPERATION_POLICIES,
    Admission,
    CreditGate,
    GatePolicy,
    OperationPolicy,
)

__all__ = [
    "OPERATION_POLICIES",
    "Admission",
    "CreditGate",
    "GatePolicy",
    "OperationPolicy",
]
