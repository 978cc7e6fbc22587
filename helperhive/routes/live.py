"""
Live query endpoint.

``GET /live/{collection}`` streams every committed change to the collection
as Server-Sent Events. Extra query parameters become equality filters; the
caller's identity is always folded in so nobody can watch documents they may
not read.
"""

import asyncio
import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse

from ..auth import get_current_user
from ..models import ServiceStatus, User
from ..realtime import Subscription, live_queries

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/live", tags=["Live"])

LIVE_COLLECTIONS = {"bookings", "messages", "notifications", "tickets", "services", "reviews", "users"}

KEEPALIVE_SECONDS = 15.0


def scope_filters(collection: str, user: User, requested: dict) -> dict:
    """Merge the caller's filters with the visibility rules of the collection"""
    if collection not in LIVE_COLLECTIONS:
        raise HTTPException(status_code=404, detail="Unknown collection")

    filters = dict(requested)
    if collection in ("bookings", "messages"):
        filters["participants"] = user.id
    elif collection == "notifications":
        filters["recipient_id"] = user.id
    elif collection == "tickets":
        if not user.is_admin:
            filters["participants"] = user.id
    elif collection == "users":
        if not user.is_admin:
            filters["id"] = user.id
    elif collection == "services":
        if not user.is_admin and filters.get("owner_id") != user.id:
            filters["status"] = ServiceStatus.APPROVED.value
    return filters


def format_event(collection: str, document: dict) -> str:
    return f"event: {collection}\ndata: {json.dumps(document, default=str)}\n\n"


async def event_stream(request: Request, subscription: Subscription):
    try:
        yield ": connected\n\n"
        while True:
            if await request.is_disconnected():
                break
            try:
                document = await subscription.get(timeout=KEEPALIVE_SECONDS)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            if document is None:
                break
            yield format_event(subscription.collection, document)
    finally:
        subscription.cancel()
        logger.info(f"📴 Live query on {subscription.collection} closed")


@router.get("/{collection}")
async def live_query(
    collection: str,
    request: Request,
    current_user: User = Depends(get_current_user),
):
    """Subscribe to a collection; the stream ends when the client disconnects"""
    filters = scope_filters(collection, current_user, dict(request.query_params))
    subscription = live_queries.subscribe(collection, filters)
    logger.info(f"📡 {current_user.id} watching {collection} with {filters}")
    return StreamingResponse(
        event_stream(request, subscription),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
