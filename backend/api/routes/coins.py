from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from models.user import UserProfile
from routes.deps import get_ledger
from services.auth import get_current_user
from services.coins import CoinLedger

router = APIRouter(prefix="/coins", tags=["coins"])


class ConvertBody(BaseModel):
    coins: int = Field(..., gt=0)


@router.get("/balance")
def coin_balance(user: UserProfile = Depends(get_current_user), ledger: CoinLedger = Depends(get_ledger)):
    return {"balance": ledger.get_balance(user.user_id)}


@router.get("/transactions")
def coin_transactions(
    limit: int = Query(50, ge=1, le=200),
    user: UserProfile = Depends(get_current_user),
    ledger: CoinLedger = Depends(get_ledger),
):
    return ledger.get_transactions(user.user_id, limit=limit)


@router.post("/convert", summary="Convert coins to Ethiopian Birr")
def convert_coins(
    body: ConvertBody,
    user: UserProfile = Depends(get_current_user),
    ledger: CoinLedger = Depends(get_ledger),
):
    result = ledger.convert_to_birr(user.user_id, body.coins)
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error)
    return {
        "message": "Coins converted successfully",
        "birrAmount": result.birr_amount,
        "newBalance": result.new_balance,
    }
