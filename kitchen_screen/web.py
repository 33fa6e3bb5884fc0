"""HTTP and WebSocket transport over the kitchen core."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Literal, Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel

from kitchen_screen.broadcast import TransportFailure
from kitchen_screen.runtime import KitchenRuntime
from kitchen_screen.session import (
    AddItem,
    Clear,
    Intent,
    OpenCategory,
    RemoveItem,
    Restart,
    ShowCart,
    ShowCategories,
    Start,
    Submit,
    Text,
)
from kitchen_screen.store import Snapshot

logger = logging.getLogger(__name__)

NO_STORE_HEADERS = {"Cache-Control": "no-store"}


class IntentRequest(BaseModel):
    type: Literal[
        "start",
        "text",
        "add_item",
        "remove_item",
        "clear",
        "restart",
        "submit",
        "show_categories",
        "open_category",
        "show_cart",
    ]
    payload: Optional[str] = None


def to_intent(req: IntentRequest) -> Intent:
    """Map a wire request onto the closed intent set."""
    simple: dict[str, Intent] = {
        "start": Start(),
        "clear": Clear(),
        "restart": Restart(),
        "submit": Submit(),
        "show_categories": ShowCategories(),
        "show_cart": ShowCart(),
    }
    if req.type in simple:
        return simple[req.type]

    if req.payload is None:
        raise HTTPException(status_code=422, detail=f"Intent {req.type!r} requires a payload")
    if req.type == "text":
        return Text(req.payload)
    if req.type == "add_item":
        return AddItem(req.payload)
    if req.type == "remove_item":
        return RemoveItem(req.payload)
    return OpenCategory(req.payload)


def create_app(runtime: KitchenRuntime) -> FastAPI:
    """Build the FastAPI app; the periodic normalizer follows the app lifespan."""

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        runtime.start()
        try:
            yield
        finally:
            runtime.stop()

    app = FastAPI(title="Kitchen Screen", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    def index() -> PlainTextResponse:
        return PlainTextResponse("OK. Point the kitchen screen at /api/orders")

    @app.get("/api/orders")
    def list_orders() -> JSONResponse:
        return JSONResponse(runtime.channel.pull().to_list(), headers=NO_STORE_HEADERS)

    @app.post("/api/sessions/{user_id}/intents")
    def post_intent(user_id: str, req: IntentRequest) -> JSONResponse:
        reply = runtime.service.handle(user_id, to_intent(req))
        return JSONResponse(reply.to_dict(), headers=NO_STORE_HEADERS)

    @app.websocket("/ws")
    async def orders_feed(websocket: WebSocket) -> None:
        await websocket.accept()
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[list[dict[str, object]]] = asyncio.Queue()

        def observer(snap: Snapshot) -> None:
            try:
                loop.call_soon_threadsafe(queue.put_nowait, snap.to_list())
            except RuntimeError as exc:
                raise TransportFailure(f"websocket loop closed: {exc}") from exc

        async def pump() -> None:
            try:
                while True:
                    orders = await queue.get()
                    await websocket.send_json({"event": "orders:update", "orders": orders})
            except (WebSocketDisconnect, RuntimeError) as exc:
                logger.info("websocket push stopped: %s", exc)

        token = runtime.channel.subscribe(observer, name=f"ws-{id(websocket):x}")
        sender = asyncio.create_task(pump())
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            sender.cancel()
            runtime.channel.unsubscribe(token)

    return app
