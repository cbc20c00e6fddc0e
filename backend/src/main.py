import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Annotated, AsyncIterator, Optional

import uvicorn
from fastapi import Depends, FastAPI, Form, HTTPException, Request, Response, status
from fastapi.responses import StreamingResponse
from fastapi.staticfiles import StaticFiles
from starlette.background import BackgroundTask

from models import BroadcastHub, HubClosed, Lagged, Shutdown, Subscription
from schemas import Message
from utilities import ROOM_MAX_LENGTH, USERNAME_MAX_LENGTH, Settings, configure_logging, get_settings, make_event, make_heartbeat, now_ts

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # hub and shutdown live from server start to server stop
    app.state.hub = BroadcastHub(settings.channel_capacity)
    app.state.shutdown = Shutdown()
    app.state.shutdown.bind()
    app.state.started_at = datetime.now(timezone.utc)
    logger.info("Broadcast hub ready (capacity=%d)", settings.channel_capacity)
    yield
    app.state.shutdown.fire()
    app.state.hub.close()


app = FastAPI(title="Room Chat", lifespan=lifespan)


def get_hub(request: Request) -> BroadcastHub:
    return request.app.state.hub


def get_shutdown(request: Request) -> Shutdown:
    return request.app.state.shutdown


# -------------- Subscriber stream --------------
async def event_stream(
    subscription: Subscription,
    shutdown: Shutdown,
    heartbeat_interval: Optional[float] = None,
) -> AsyncIterator[str]:
    """
    Push loop for one client: race the next message against shutdown and yield SSE frames.

    Lagging just skips ahead silently; hub closure or shutdown ends the stream. When
    heartbeat_interval is set, an idle stream emits a comment frame that often
    without dropping the pending receive. The subscription is released however the
    loop ends, including cancellation when the client goes away.
    """
    shutdown_wait = asyncio.ensure_future(shutdown.wait())
    next_message: Optional[asyncio.Future] = None
    try:
        while not shutdown.fired:
            if next_message is None:
                next_message = asyncio.ensure_future(subscription.recv())
            done, _ = await asyncio.wait(
                {next_message, shutdown_wait},
                timeout=heartbeat_interval or None,
                return_when=asyncio.FIRST_COMPLETED,
            )
            # shutdown wins even when a message is ready in the same step
            if shutdown_wait in done or shutdown.fired:
                break
            if not done:
                yield make_heartbeat()
                continue

            received, next_message = next_message, None
            try:
                message = received.result()
            except Lagged as exc:
                logger.debug("Subscriber lagged, skipped %d messages", exc.skipped)
                continue
            except HubClosed:
                break
            yield make_event(message)
    finally:
        if next_message is not None:
            next_message.cancel()
            if next_message.done() and not next_message.cancelled():
                # outcome lost to shutdown, retrieve it so asyncio does not warn
                next_message.exception()
        shutdown_wait.cancel()
        subscription.close()


# -------------- REST endpoints --------------

@app.post("/message")
async def post_message(
    form: Annotated[Message, Form()],
    hub: BroadcastHub = Depends(get_hub),
) -> Response:
    # having no one listening is fine
    try:
        receivers = hub.publish(form)
    except HubClosed:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="server shutting down")
    logger.debug("Published to room %r for %d subscribers", form.room, receivers)
    return Response(status_code=status.HTTP_200_OK)


@app.get("/events")
async def get_events(
    hub: BroadcastHub = Depends(get_hub),
    shutdown: Shutdown = Depends(get_shutdown),
    app_settings: Settings = Depends(get_settings),
) -> StreamingResponse:
    # subscribe before the response starts so nothing published after the headers is missed
    subscription = hub.subscribe()
    return StreamingResponse(
        event_stream(subscription, shutdown, app_settings.heartbeat_interval),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        # covers a client that disconnects before the body is iterated
        background=BackgroundTask(subscription.close),
    )


@app.get("/health")
async def rest_health(request: Request, hub: BroadcastHub = Depends(get_hub)):
    now = datetime.now(timezone.utc)
    uptime_sec = int((now - request.app.state.started_at).total_seconds())
    return {
        "uptime_sec": uptime_sec,
        "subscribers": hub.subscriber_count,
        "published": hub.messages_published,
        "capacity": hub.capacity,
        "room_max_length": ROOM_MAX_LENGTH,
        "username_max_length": USERNAME_MAX_LENGTH,
        "shutting_down": request.app.state.shutdown.fired,
        "ts": now_ts(),
    }


# static chat page, mounted last so the routes above take precedence
if settings.static_dir.is_dir():
    app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")


# -------------- Server --------------

class ChatServer(uvicorn.Server):
    ''' uvicorn server that ends open event streams before waiting on connections.'''

    def __init__(self, config: uvicorn.Config, app: FastAPI):
        super().__init__(config)
        self.chat_app = app

    def handle_exit(self, sig, frame) -> None:
        shutdown = getattr(self.chat_app.state, "shutdown", None)
        if shutdown is not None:
            shutdown.fire()
        super().handle_exit(sig, frame)


def run() -> None:
    config = uvicorn.Config(app, host=settings.host, port=settings.port, log_config=None)
    ChatServer(config, app).run()


if __name__ == "__main__":
    run()
