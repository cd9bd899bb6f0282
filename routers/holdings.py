# routers/holdings.py
from typing import List

from fastapi import APIRouter, Depends

from dependencies import get_balances, require_identity
from schemas.identity import Identity
from schemas.registry import Balance
from services.balance_service import BalanceStore

router = APIRouter(prefix="/api", tags=["holdings"])


@router.get("/holdings", response_model=List[Balance], summary="Holdings of the buyer's org")
def list_holdings(
     identity: Identity = Depends(require_identity),
     balances: BalanceStore = Depends(get_balances),
):
     """Reads balances from the registry and refreshes the local holdings cache."""
     return balances.get_holdings(identity.org_id)
