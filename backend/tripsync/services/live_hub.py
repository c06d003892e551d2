"""
Live Hub

Per-trip WebSocket fan-out. After every write a route calls
``hub.publish(trip_id, kind)``; the hub re-reads the changed data, re-runs the
normalizer for it and pushes ``{"type": kind, "tripId", "data"}`` to every
subscriber of the trip.
"""

import logging

from fastapi import WebSocket, WebSocketDisconnect

from tripsync.core.errors import NotFoundError
from tripsync.services.trips import get_trip_or_404, load_expenses, load_itinerary, load_messages
from tripsync.views.members import normalize_members

logger = logging.getLogger(__name__)

LIVE_KINDS = ("itinerary", "messages", "expenses", "members")


class LiveHub:
    def __init__(self):
        # trip id -> open sockets
        self.active_connections: dict[str, list[WebSocket]] = {}

    def connect(self, trip_id: str, websocket: WebSocket) -> None:
        self.active_connections.setdefault(trip_id, []).append(websocket)
        logger.info("[live] Active connections for %s: %d", trip_id, len(self.active_connections[trip_id]))

    def disconnect(self, trip_id: str, websocket: WebSocket) -> None:
        connections = self.active_connections.get(trip_id)
        if connections and websocket in connections:
            connections.remove(websocket)
        if not connections:
            self.active_connections.pop(trip_id, None)

    def subscribers(self, trip_id: str) -> int:
        return len(self.active_connections.get(trip_id, []))

    async def read(self, trip: dict, kind: str):
        if kind == "itinerary":
            return await load_itinerary(trip)
        if kind == "messages":
            return await load_messages(trip)
        if kind == "expenses":
            return await load_expenses(trip)
        if kind == "members":
            return normalize_members(trip.get("members"))
        raise ValueError(f"Unknown live view kind: {kind}")

    async def snapshot(self, trip: dict) -> dict:
        data = {kind: await self.read(trip, kind) for kind in LIVE_KINDS}
        data["startDate"] = trip.get("startDate")
        data["endDate"] = trip.get("endDate")
        return {"type": "snapshot", "tripId": str(trip["_id"]), "data": data}

    async def publish(self, trip_id: str, *kinds: str) -> None:
        """
        Re-normalize ``kinds`` for a trip and push them to its subscribers.

        Called after a write has been committed, so failures are logged and
        never reach the caller.
        """
        if not self.subscribers(trip_id):
            return
        try:
            await self._publish(trip_id, kinds)
        except NotFoundError:
            logger.warning("[live] Trip %s vanished before publish", trip_id)
        except Exception:
            logger.exception("[live] Publish of %s failed for trip %s", ", ".join(kinds), trip_id)

    async def _publish(self, trip_id: str, kinds: tuple[str, ...]) -> None:
        trip = await get_trip_or_404(trip_id)
        for kind in kinds:
            event = {"type": kind, "tripId": trip_id, "data": await self.read(trip, kind)}
            await self.broadcast(trip_id, event)

    async def broadcast(self, trip_id: str, event: dict) -> None:
        for connection in list(self.active_connections.get(trip_id, [])):
            try:
                await connection.send_json(event)
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.info("[live] Dropping dead connection on %s: %s", trip_id, e)
                self.disconnect(trip_id, connection)


hub = LiveHub()
