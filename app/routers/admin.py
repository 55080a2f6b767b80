from fastapi import APIRouter, Depends

from app.core.logger import get_logger
from app.core.security import get_wager, normalize_address, require_owner
from app.core.wager import CoinFlipWager

logger = get_logger("admin")

router = APIRouter()


# Every read below is refused with 403 unless the caller is the owner,
# whatever the path address looks like


@router.get("/users/{address}/balance")
async def user_balance(
    address: str,
    caller: str = Depends(require_owner),
    wager: CoinFlipWager = Depends(get_wager),
):
    user = normalize_address(address)
    return {"address": user, "balance": wager.get_balance(caller, user)}


@router.get("/users/{address}/request")
async def user_request(
    address: str,
    caller: str = Depends(require_owner),
    wager: CoinFlipWager = Depends(get_wager),
):
    user = normalize_address(address)
    return {"address": user, "request_id": wager.get_request(caller, user)}


@router.get("/users/{address}/result")
async def user_result(
    address: str,
    caller: str = Depends(require_owner),
    wager: CoinFlipWager = Depends(get_wager),
):
    user = normalize_address(address)
    result = wager.get_result(caller, user)
    return {"address": user, "result": int(result), "name": result.name.lower()}


@router.get("/users/{address}/pick")
async def user_pick(
    address: str,
    caller: str = Depends(require_owner),
    wager: CoinFlipWager = Depends(get_wager),
):
    user = normalize_address(address)
    pick = wager.get_pick(caller, user)
    return {"address": user, "pick": int(pick), "name": pick.name.lower()}
