import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, Header, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, get_settings
from .database import Database
from .errors import ChatError
from .messages import MessageStore
from .models import MessageIn, MessageOut, ParticipantIn, ParticipantOut
from .registry import ParticipantRegistry
from .sweeper import LivenessSweeper

logger = logging.getLogger("batepapo")


def get_registry(request: Request) -> ParticipantRegistry:
    return request.app.state.registry


def get_messages(request: Request) -> MessageStore:
    return request.app.state.messages


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="[%(asctime)s] %(levelname)s - %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = Database(settings.database_url, echo=settings.database_echo)
        await db.connect()
        app.state.db = db
        app.state.registry = ParticipantRegistry(db)
        app.state.messages = MessageStore(db)
        app.state.sweeper = LivenessSweeper(
            db,
            interval=settings.sweep_interval,
            timeout=settings.inactivity_timeout,
        )
        app.state.sweeper.start()
        try:
            yield
        finally:
            await app.state.sweeper.stop()
            await db.close()

    app = FastAPI(title="Bate-papo", version="1.0.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ChatError)
    async def chat_error_handler(request: Request, exc: ChatError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    @app.post("/participants", status_code=201, response_model=ParticipantOut)
    async def register_participant(
        body: ParticipantIn,
        registry: ParticipantRegistry = Depends(get_registry),
    ):
        participant = await registry.register(body.name)
        return ParticipantOut.from_row(participant)

    @app.get("/participants", response_model=List[ParticipantOut])
    async def list_participants(registry: ParticipantRegistry = Depends(get_registry)):
        return [ParticipantOut.from_row(p) for p in await registry.list()]

    @app.post("/messages", status_code=201, response_model=MessageOut)
    async def post_message(
        body: MessageIn,
        user: Optional[str] = Header(default=None),
        messages: MessageStore = Depends(get_messages),
    ):
        message = await messages.post(user, body.to, body.text, body.type)
        return MessageOut.from_row(message)

    @app.get("/messages", response_model=List[MessageOut])
    async def list_messages(
        limit: Optional[str] = None,
        user: Optional[str] = Header(default=None),
        messages: MessageStore = Depends(get_messages),
    ):
        return [MessageOut.from_row(m) for m in await messages.list(user, limit)]

    @app.put("/messages/{message_id}", response_model=MessageOut)
    async def update_message(
        message_id: str,
        body: MessageIn,
        user: Optional[str] = Header(default=None),
        messages: MessageStore = Depends(get_messages),
    ):
        message = await messages.update(message_id, user, body.to, body.text, body.type)
        return MessageOut.from_row(message)

    @app.delete("/messages/{message_id}")
    async def delete_message(
        message_id: str,
        user: Optional[str] = Header(default=None),
        messages: MessageStore = Depends(get_messages),
    ):
        await messages.delete(message_id, user)
        return Response(status_code=200)

    @app.post("/status")
    async def heartbeat(
        user: Optional[str] = Header(default=None),
        registry: ParticipantRegistry = Depends(get_registry),
    ):
        await registry.heartbeat(user)
        return Response(status_code=200)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
