"""
Credit gate for paid AI operations.

Admits an operation against the user's credit ledger before the external
call starts. Deduction is a compare-and-swap through the ledger repository:

    1. read remaining
    2. remaining < amount     -> InsufficientCredits (hard) / admit undeducted (soft)
    3. conditional deduct     -> succeeds only if remaining is unchanged
    4. zero rows modified     -> ConcurrentModification (hard) / re-read (soft)

Each operation has a fixed policy:

    evaluate_fit     ai      1   hard
    analyze_job      ai      1   hard
    generate_resume  resume  1   soft

Hard-gated operations never run without a successful deduction. Soft-gated
operations always run; credits are deducted when available and the usage
record says whether they were.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt

from src.common.error_handling import (
    ConcurrentModification,
    CreditGateRejected,
    InsufficientCredits,
    NotFoundError,
    ValidationError,
)
from src.common.logger import get_logger
from src.common.repositories.base import LedgerRepositoryInterface
from src.common.types import CreditLedger, CreditUsageRecord


class GatePolicy(str, Enum):
    """How the gate treats a ledger that cannot cover the operation."""

    HARD = "hard"
    SOFT = "soft"


@dataclass(frozen=True)
class OperationPolicy:
    """Credit type, default amount and gate policy of one paid operation."""

    operation: str
    credit_type: str
    amount: int
    policy: GatePolicy


OPERATION_POLICIES: Dict[str, OperationPolicy] = {
    "evaluate_fit": OperationPolicy("evaluate_fit", "ai", 1, GatePolicy.HARD),
    "analyze_job": OperationPolicy("analyze_job", "ai", 1, GatePolicy.HARD),
    "generate_resume": OperationPolicy("generate_resume", "resume", 1, GatePolicy.SOFT),
}


@dataclass
class Admission:
    """Outcome of an admitted paid operation."""

    user_id: str
    operation: str
    credit_type: str
    amount: int
    deducted: bool
    remaining: int                     # ledger balance after this admission
    run_id: Optional[str] = None
    admitted_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def charged(self) -> bool:
        return self.deducted

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "operation": self.operation,
            "credit_type": self.credit_type,
            "amount": self.amount,
            "deducted": self.deducted,
            "remaining": self.remaining,
            "run_id": self.run_id,
        }


class CreditGate:
    """
    Admission check plus atomic deduction for paid operations.

    Usage:
        gate = CreditGate(get_ledger_repository())
        admission = gate.request_paid_operation(user_id, "evaluate_fit")
    """

    def __init__(
        self,
        ledger_repository: LedgerRepositoryInterface,
        policies: Optional[Dict[str, OperationPolicy]] = None,
    ):
        self.ledger_repository = ledger_repository
        self.policies = policies if policies is not None else OPERATION_POLICIES

    def policy_for(self, operation: str) -> OperationPolicy:
        try:
            return self.policies[operation]
        except KeyError:
            raise ValidationError(f"Unknown paid operation: {operation}") from None

    def request_paid_operation(
        self,
        user_id: str,
        operation: str,
        amount: Optional[int] = None,
        max_attempts: int = 1,
        run_id: Optional[str] = None,
    ) -> Admission:
        """
        Admit ``operation`` for ``user_id``, deducting credits per its policy.

        Args:
            user_id: Ledger owner
            operation: Key into the operation policies
            amount: Credits to deduct (default: the policy's amount)
            max_attempts: Whole read/deduct attempts on ConcurrentModification.
                1 means no automatic retry.
            run_id: Run id recorded on the usage record

        Returns:
            Admission describing whether credits were deducted

        Raises:
            ValidationError: Unknown operation, non-positive amount or attempts
            NotFoundError: Hard-gated operation and the user has no ledger
            InsufficientCredits: Hard-gated operation and remaining < amount
            ConcurrentModification: Hard-gated operation lost every CAS attempt
        """
        policy = self.policy_for(operation)
        amount = policy.amount if amount is None else amount
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValidationError(f"Credit amount must be a positive integer, got {amount!r}")
        if max_attempts < 1:
            raise ValidationError(f"max_attempts must be at least 1, got {max_attempts}")

        op_logger = get_logger(__name__, run_id=run_id, operation=operation, user_id=user_id)

        if policy.policy is GatePolicy.HARD:
            admission = self._admit_hard(user_id, policy, amount, max_attempts, run_id, op_logger)
        else:
            admission = self._admit_soft(user_id, policy, amount, max_attempts, run_id, op_logger)

        self._record_usage(admission, op_logger)
        return admission

    def _admit_hard(self, user_id, policy, amount, max_attempts, run_id, op_logger) -> Admission:
        for attempt in Retrying(
            stop=stop_after_attempt(max_attempts),
            retry=retry_if_exception_type(ConcurrentModification),
            reraise=True,
        ):
            with attempt:
                ledger = self._read_ledger(user_id, policy.credit_type)
                if ledger is None:
                    raise NotFoundError(
                        f"No {policy.credit_type} credit ledger for user {user_id}"
                    )
                admission = self._try_deduct(ledger, policy, amount, run_id, op_logger)
        return admission

    def _admit_soft(self, user_id, policy, amount, max_attempts, run_id, op_logger) -> Admission:
        try:
            return self._admit_hard(user_id, policy, amount, max_attempts, run_id, op_logger)
        except (CreditGateRejected, NotFoundError) as e:
            op_logger.warning(f"Admitted without deduction: {e}")
            ledger = self._read_ledger(user_id, policy.credit_type)
            return Admission(
                user_id=user_id,
                operation=policy.operation,
                credit_type=policy.credit_type,
                amount=amount,
                deducted=False,
                remaining=ledger.remaining if ledger else 0,
                run_id=run_id,
            )

    def _read_ledger(self, user_id: str, credit_type: str) -> Optional[CreditLedger]:
        return self.ledger_repository.read_ledger(user_id, credit_type)

    def _try_deduct(
        self,
        ledger: CreditLedger,
        policy: OperationPolicy,
        amount: int,
        run_id: Optional[str],
        op_logger,
    ) -> Admission:
        if ledger.remaining < amount:
            op_logger.info(
                f"Rejected: {ledger.remaining} {policy.credit_type} credits remaining, {amount} required"
            )
            raise InsufficientCredits(ledger.user_id, policy.credit_type, amount, ledger.remaining)

        modified = self.ledger_repository.conditional_deduct(
            ledger.user_id,
            policy.credit_type,
            amount,
            expected_remaining=ledger.remaining,
        )
        if modified == 0:
            op_logger.warning(
                f"Ledger changed concurrently (expected {ledger.remaining} remaining)"
            )
            raise ConcurrentModification(
                ledger.user_id, policy.credit_type, amount, ledger.remaining
            )

        op_logger.info(f"Admitted, deducted {amount} (remaining {ledger.remaining - amount})")
        return Admission(
            user_id=ledger.user_id,
            operation=policy.operation,
            credit_type=policy.credit_type,
            amount=amount,
            deducted=True,
            remaining=ledger.remaining - amount,
            run_id=run_id,
        )

    def _record_usage(self, admission: Admission, op_logger) -> None:
        record = CreditUsageRecord(
            user_id=admission.user_id,
            credit_type=admission.credit_type,
            operation=admission.operation,
            amount=admission.amount,
            deducted=admission.deducted,
            run_id=admission.run_id,
            created_at=admission.admitted_at,
        )
        try:
            self.ledger_repository.record_usage(record)
        except Exception as e:
            # Admission stands even when the audit write fails.
            op_logger.error(f"Failed to record credit usage: {e}")
