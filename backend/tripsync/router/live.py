"""
Live trip feed over WebSocket
"""

import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from tripsync.core.errors import ForbiddenError, NotFoundError, UnauthorizedError
from tripsync.core.security import verify_token
from tripsync.services.live_hub import hub
from tripsync.services.trips import get_trip_or_404, require_member

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/trips", tags=["Live"])

CLOSE_UNAUTHORIZED = 4401
CLOSE_FORBIDDEN = 4403
CLOSE_NOT_FOUND = 4404


@router.websocket("/{trip_id}/live")
async def trip_live(websocket: WebSocket, trip_id: str, token: str | None = Query(None)):
    await websocket.accept()

    try:
        user = verify_token(token)
        trip = await get_trip_or_404(trip_id)
        require_member(trip, user)
    except UnauthorizedError as e:
        await websocket.close(code=CLOSE_UNAUTHORIZED, reason=e.message)
        return
    except NotFoundError as e:
        await websocket.close(code=CLOSE_NOT_FOUND, reason=e.message)
        return
    except ForbiddenError as e:
        await websocket.close(code=CLOSE_FORBIDDEN, reason=e.message)
        return

    hub.connect(trip_id, websocket)
    try:
        await websocket.send_json(await hub.snapshot(trip))
        while True:
            try:
                data = await websocket.receive_json()
            except ValueError:
                logger.warning("[live] Ignoring malformed frame on trip %s", trip_id)
                continue
            if isinstance(data, dict) and data.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        logger.info("[live] %s left trip %s", user.id, trip_id)
    finally:
        hub.disconnect(trip_id, websocket)
