from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, StrictInt
from slowapi import Limiter

from app.config import settings
from app.core.logger import get_logger
from app.core.security import get_caller, get_wager, rate_limit_key
from app.core.wager import CoinFlipWager

logger = get_logger("api")

limiter = Limiter(key_func=rate_limit_key)

router = APIRouter()

# ==================== Request Models ====================

class AmountRequest(BaseModel):
    amount: int

class PickRequest(BaseModel):
    side: StrictInt


# ==================== Helpers ====================

def get_rate_limit():
    """Get rate limit string from config."""
    return settings.rate_limit.wager_requests if settings.rate_limit.enabled else "1000/minute"


# ==================== Wager Endpoints ====================

@router.post("/deposit")
@limiter.limit(get_rate_limit)
async def deposit(
    request: Request,
    data: AmountRequest,
    caller: str = Depends(get_caller),
    wager: CoinFlipWager = Depends(get_wager),
):
    amount = wager.deposit(caller, data.amount)
    return {"success": True, "deposit": amount, "pool_balance": wager.pool_balance}

@router.post("/receive")
@limiter.limit(get_rate_limit)
async def receive(
    request: Request,
    data: AmountRequest,
    caller: str = Depends(get_caller),
    wager: CoinFlipWager = Depends(get_wager),
):
    """Plain value transfer with no operation selected; handled as a deposit."""
    amount = wager.receive(caller, data.amount)
    return {"success": True, "deposit": amount, "pool_balance": wager.pool_balance}

@router.post("/pick")
@limiter.limit(get_rate_limit)
async def pick(
    request: Request,
    data: PickRequest,
    caller: str = Depends(get_caller),
    wager: CoinFlipWager = Depends(get_wager),
):
    side = wager.pick(caller, data.side)
    return {"success": True, "side": int(side), "name": side.name.lower()}

@router.post("/flip")
@limiter.limit(get_rate_limit)
async def flip(
    request: Request,
    caller: str = Depends(get_caller),
    wager: CoinFlipWager = Depends(get_wager),
):
    request_id = wager.flip_coin(caller)
    return {"success": True, "request_id": request_id}

@router.post("/withdraw")
@limiter.limit(get_rate_limit)
async def withdraw(
    request: Request,
    caller: str = Depends(get_caller),
    wager: CoinFlipWager = Depends(get_wager),
):
    amount = wager.withdraw_to_winner(caller)
    logger.info(f"{caller} withdrew {amount} wei")
    return {"success": True, "amount": amount, "pool_balance": wager.pool_balance}

# ==================== Public Reads ====================

@router.get("/owner")
async def get_owner(wager: CoinFlipWager = Depends(get_wager)):
    return {"owner": wager.get_owner()}

@router.get("/pool")
async def get_pool(wager: CoinFlipWager = Depends(get_wager)):
    return {"pool_balance": wager.pool_balance}
