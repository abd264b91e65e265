"""
Spectator WebSocket for one tournament channel.

Clients only listen: every match:started, match:update and bracket:refresh
published for the event is forwarded as JSON. Anything the client sends is ignored.
"""
import asyncio
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.engine import Engine
from sqlmodel import Session

from bracket_engine.database import get_engine
from bracket_engine.models.event import Event
from bracket_engine.services.broadcaster import ChannelBroadcaster, Subscription

logger = logging.getLogger(__name__)

router = APIRouter()


def event_exists(bind: Engine, event_id: int) -> bool:
    with Session(bind) as session:
        return session.get(Event, event_id) is not None


async def _forward(websocket: WebSocket, subscription: Subscription) -> None:
    while True:
        message = await subscription.get()
        await websocket.send_json(message)


async def _drain(websocket: WebSocket) -> None:
    # Returns (via WebSocketDisconnect) once the client goes away
    while True:
        await websocket.receive_text()


async def _stop(tasks) -> None:
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


@router.websocket("/ws/tournaments/{event_id}")
async def tournament_channel(websocket: WebSocket, event_id: int, bind: Engine = Depends(get_engine)):
    if not await run_in_threadpool(event_exists, bind, event_id):
        await websocket.close(code=4004, reason="Event not found")
        return

    broadcaster: ChannelBroadcaster = websocket.app.state.broadcaster
    await websocket.accept()
    subscription = broadcaster.subscribe(event_id)
    tasks = []
    try:
        await websocket.send_json({"type": "subscribed", "tournament_id": event_id})
        tasks = [
            asyncio.create_task(_forward(websocket, subscription)),
            asyncio.create_task(_drain(websocket)),
        ]
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            error = task.exception()
            if error is not None and not isinstance(error, WebSocketDisconnect):
                logger.warning(f"Spectator connection on event {event_id} failed: {error}")
    except WebSocketDisconnect:
        pass
    finally:
        # Also runs when this handler is cancelled, so no task outlives the socket
        await _stop(tasks)
        broadcaster.unsubscribe(subscription)
