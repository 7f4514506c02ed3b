import asyncio
import json
import threading
from typing import Callable, Optional

import websockets
from websockets.exceptions import ConnectionClosed

from .broadcaster import Broadcaster


class WebSocketSubscriber:
    """One websocket connection registered with the Broadcaster.

    send() may be called from any thread; frames are queued onto the event
    loop and written in order by a single writer task. When the bounded
    queue is full, new frames are dropped for this connection only.
    """

    def __init__(self, websocket, loop: asyncio.AbstractEventLoop, max_queue=256):
        self.websocket = websocket
        self.loop = loop
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue)
        self.dropped_frames = 0
        self.closed = False

    @property
    def remote_address(self):
        return getattr(self.websocket, "remote_address", "unknown")

    def send(self, event: str, payload):
        if self.closed:
            raise ConnectionError(f"Subscriber {self.remote_address} is closed")
        message = json.dumps({"event": event, "data": payload}, allow_nan=False)
        self.loop.call_soon_threadsafe(self._enqueue, message)

    def _enqueue(self, message: str):
        if self.closed:
            return
        try:
            self.queue.put_nowait(message)
        except asyncio.QueueFull:
            self.dropped_frames += 1
            if self.dropped_frames % 100 == 1:
                print(
                    f"[WebSocket] Slow client {self.remote_address}, "
                    f"dropped {self.dropped_frames} frames"
                )

    async def run_writer(self):
        while True:
            message = await self.queue.get()
            try:
                await self.websocket.send(message)
            except ConnectionClosed:
                self.closed = True
                return

    def close(self):
        self.closed = True


class WebSocketBroadcaster(threading.Thread):
    """Threaded WebSocket server carrying the Broadcaster's fan-out.

    Frames are JSON objects {"event": name, "data": payload}. Frames sent by
    clients are handed to `on_control(event, data)`.
    """

    def __init__(
        self,
        broadcaster: Broadcaster,
        host: str = "0.0.0.0",
        port: int = 8001,
        on_control: Optional[Callable[[str, object], None]] = None,
        max_queue: int = 256,
    ):
        super().__init__(daemon=True)
        self.broadcaster = broadcaster
        self.host = host
        self.port = port
        self.on_control = on_control
        self.max_queue = max_queue
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.start_error: Optional[Exception] = None
        self._loop_ready = threading.Event()
        self._stop_event: Optional[asyncio.Event] = None

    async def _handler(self, websocket):
        client_addr = getattr(websocket, "remote_address", "unknown")
        subscriber = WebSocketSubscriber(websocket, self.loop, self.max_queue)
        writer = asyncio.ensure_future(subscriber.run_writer())
        self.broadcaster.connect(subscriber)
        print(f"[WebSocket] Client connected from {client_addr}")
        try:
            async for message in websocket:
                self._handle_control(message)
        except ConnectionClosed:
            pass
        finally:
            subscriber.close()
            self.broadcaster.disconnect(subscriber)
            writer.cancel()
            print(f"[WebSocket] Client disconnected from {client_addr}")

    def _handle_control(self, message):
        if self.on_control is None:
            return
        try:
            frame = json.loads(message)
            event = frame["event"]
        except (ValueError, TypeError, KeyError) as e:
            print(f"[WebSocket] Ignoring malformed control frame: {e}")
            return
        try:
            self.on_control(event, frame.get("data"))
        except Exception as e:
            print(f"[WebSocket] Control '{event}' failed: {e}")

    def run(self):
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)

        async def runner():
            self._stop_event = asyncio.Event()
            try:
                async with websockets.serve(
                    self._handler,
                    self.host,
                    self.port,
                    ping_interval=20,  # Send ping every 20 seconds
                    ping_timeout=10,  # Close connection if no pong after 10 seconds
                    close_timeout=5,  # Timeout for close handshake
                ) as server:
                    self.port = list(server.sockets)[0].getsockname()[1]
                    print(f"[WebSocket] Broadcaster ready on port {self.port}")
                    self._loop_ready.set()
                    await self._stop_event.wait()
            except OSError as e:
                print(f"[WebSocket] Failed to start on port {self.port}: {e}")
                self.start_error = e
                self._loop_ready.set()  # still set to avoid deadlocks

        try:
            self.loop.run_until_complete(runner())
        finally:
            self.loop.close()

    def wait_ready(self, timeout: Optional[float] = None) -> bool:
        return self._loop_ready.wait(timeout)

    def stop(self):
        if self.loop and self._stop_event and not self.loop.is_closed():
            try:
                self.loop.call_soon_threadsafe(self._stop_event.set)
            except RuntimeError:
                pass
        self.join(timeout=5.0)
