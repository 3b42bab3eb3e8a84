import asyncio
import logging
from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from library_api.dependencies import get_notifier
from library_api.services.notifier import ChangeEvent, ChangeNotifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Change Events"])

STREAM_QUEUE_SIZE = 100
KEEPALIVE_SECONDS = 15

def _offer(queue: asyncio.Queue, event: ChangeEvent):
    try:
        queue.put_nowait(event)
    except asyncio.QueueFull:
        logger.warning(f"Event stream queue full, dropping {event.type.value} event")

def format_sse(event: ChangeEvent) -> str:
    return f"event: {event.type.value}\ndata: {event.model_dump_json()}\n\n"

@router.get("/events")
async def stream_events(request: Request, notifier: ChangeNotifier = Depends(get_notifier)):
    """Server-Sent Events stream of inventory changes, for open browser tabs."""

    async def event_stream():
        # Subscribed only while the stream is being consumed
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue(maxsize=STREAM_QUEUE_SIZE)
        subscription = notifier.subscribe(lambda event: loop.call_soon_threadsafe(_offer, queue, event))
        try:
            while not await request.is_disconnected():
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                yield format_sse(event)
        finally:
            subscription.close()

    return StreamingResponse(event_stream(), media_type="text/event-stream")

@router.get("/notifier/status")
async def get_notifier_status(request: Request, notifier: ChangeNotifier = Depends(get_notifier)):
    """Change notifier and MQTT bridge status."""
    bridge = request.app.state.mqtt_bridge
    return {
        "node_id": notifier.node_id,
        "subscribers": notifier.subscriber_count,
        "mqtt_enabled": bridge is not None,
        "connected": bridge.is_connected if bridge else False,
        "running": bridge.is_running() if bridge else False,
    }
