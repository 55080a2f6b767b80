"""
Development endpoints driving the local randomness coordinator.

They stand in for the external provider: nothing here is part of the wager
engine itself.
"""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from app.core.logger import get_logger

logger = get_logger("vrf-router")

router = APIRouter()


class FulfillRequest(BaseModel):
    words: Optional[List[int]] = None


class FundRequest(BaseModel):
    amount: int


def _deployment(request: Request):
    return request.app.state.deployment


@router.get("/pending")
async def pending_requests(request: Request):
    coordinator = _deployment(request).coordinator
    return {"pending": coordinator.pending_request_ids()}


@router.get("/subscription")
async def subscription_info(request: Request):
    deployment = _deployment(request)
    sub = deployment.coordinator.get_subscription(deployment.subscription_id)
    return {"subscription_id": sub.id, "balance": sub.balance, "consumers": len(sub.consumers)}


@router.post("/fund")
async def fund_subscription(request: Request, data: FundRequest):
    if data.amount <= 0:
        raise HTTPException(status_code=400, detail="Amount must be greater than zero")
    deployment = _deployment(request)
    balance = deployment.coordinator.fund_subscription(deployment.subscription_id, data.amount)
    return {"subscription_id": deployment.subscription_id, "balance": balance}


@router.post("/fulfill/{request_id}")
async def fulfill(request: Request, request_id: int, data: Optional[FulfillRequest] = None):
    """Deliver words for a queued request; explicit words only in debug mode."""
    coordinator = _deployment(request).coordinator

    if data is not None and data.words is not None:
        if not request.app.state.config.server.debug:
            raise HTTPException(status_code=403, detail="Word override is only available in debug mode")
        fulfillment = coordinator.fulfill_random_words_with_override(request_id, None, data.words)
    else:
        fulfillment = coordinator.fulfill_random_words(request_id)

    logger.info(f"Request {request_id} fulfilled via API", extra={"success": fulfillment.success})
    return {
        "request_id": fulfillment.request_id,
        "success": fulfillment.success,
        "payment": fulfillment.payment,
        "words": [str(w) for w in fulfillment.words],
    }
