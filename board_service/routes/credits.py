"""
Credit balance endpoint.
"""

from fastapi import APIRouter, Depends

from src.common.error_handling import NotFoundError
from src.common.repositories import LedgerRepositoryInterface
from src.common.types import CREDIT_TYPES

from ..auth import verify_token
from ..dependencies import get_ledger
from ..models import CreditLedgerModel, CreditsResponse

router = APIRouter(tags=["credits"])


@router.get(
    "/users/{user_id}/credits",
    response_model=CreditsResponse,
    dependencies=[Depends(verify_token)],
    summary="Remaining and used credits per credit type",
)
def get_credits(
    user_id: str,
    ledger: LedgerRepositoryInterface = Depends(get_ledger),
) -> CreditsResponse:
    credits = {}
    for credit_type in CREDIT_TYPES:
        entry = ledger.read_ledger(user_id, credit_type)
        if entry is None:
            raise NotFoundError(f"No subscription found for user {user_id}")
        credits[credit_type] = CreditLedgerModel(
            remaining=entry.remaining,
            used=entry.used,
            total=entry.total,
        )
    return CreditsResponse(user_id=user_id, credits=credits)
