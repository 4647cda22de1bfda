"""Workflow Tracker real-time backend.

This is the main entry point for the real-time notification and chat core
of the workflow tracker (processes, incidents, reviewers).

Modules:
    - realtime: WebSocket presence, delivery engine and typing relay
    - conversations: public/private conversation records and REST views
    - messages: append-only message log
    - notifications: per-user notification history and REST views
    - auth: JWT bearer verification shared by REST and WebSocket
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.auth.service import TokenService
from app.config import AppConfig, get_config
from app.conversations.router import router as conversations_router
from app.conversations.service import ConversationStore
from app.db import Database
from app.errors import CoreError
from app.messages.service import MessageLog
from app.notifications.router import router as notifications_router
from app.notifications.service import NotificationStore
from app.realtime.delivery import DeliveryEngine
from app.realtime.hub import RoomHub
from app.realtime.presence import PresenceRegistry
from app.realtime.router import router as realtime_router
from app.realtime.typing_relay import TypingRelay

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# uvicorn.access logs every HTTP request and WebSocket upgrade.
for _noisy in ("uvicorn.access", "httpx", "httpcore"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


def _build_services(app: FastAPI, config: AppConfig) -> None:
    """Create every component once and store it on ``app.state``.

    Anything that needs to address rooms receives the same RoomHub.
    """
    db = Database(config.database.path)
    presence = PresenceRegistry(public_room=config.chat.public_room)
    hub = RoomHub(presence)
    conversations = ConversationStore(db, public_room=config.chat.public_room)
    messages = MessageLog(db)
    notifications = NotificationStore(db)

    app.state.config = config
    app.state.db = db
    app.state.tokens = TokenService(
        secret_key=config.secrets.jwt.secret_key,
        algorithm=config.auth.algorithm,
        expire_minutes=config.auth.token_expire_minutes,
    )
    app.state.presence = presence
    app.state.hub = hub
    app.state.conversations = conversations
    app.state.messages = messages
    app.state.notifications = notifications
    app.state.engine = DeliveryEngine(
        hub=hub,
        presence=presence,
        conversations=conversations,
        messages=messages,
        notifications=notifications,
        history_limit=config.chat.history_limit,
        preview_chars=config.chat.preview_chars,
    )
    app.state.typing = TypingRelay(hub)


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Explicit config (tests pass an in-memory one). Defaults to
            ``get_config()`` resolved at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager for startup/shutdown events."""
        # Startup
        cfg = config or get_config()

        # Apply configured log level to root logger so that
        # `logging.level: "debug"` in workflow.settings.yaml activates DEBUG output.
        configured_level = getattr(logging, cfg.logging.level.upper(), None)
        if configured_level is not None:
            logging.getLogger().setLevel(configured_level)
            logger.info("Root logger level set to %s", cfg.logging.level.upper())

        _build_services(app, cfg)

        # Create the public conversation before any connection can race on it.
        public = app.state.conversations.get_or_create_public()
        logger.info(
            f"Real-time core ready: public conversation {public.id}, "
            f"room '{cfg.chat.public_room}', db={cfg.database.path}"
        )

        yield  # Application runs here

        # Shutdown
        app.state.db.close()
        logger.info("Application shutdown complete")

    app = FastAPI(
        title="Workflow Tracker Real-time API",
        description="Presence, chat delivery and notifications for the workflow tracker",
        version="0.1.0",
        lifespan=lifespan,
    )

    cors_origins = (config.server.allowed_origins if config else ["*"])
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(CoreError)
    async def core_error_handler(request: Request, exc: CoreError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"[ERROR] {request.method} {request.url.path}: {exc.message}")
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    # Register all routers
    app.include_router(realtime_router)
    app.include_router(conversations_router)
    app.include_router(notifications_router)

    @app.get("/health")
    async def health() -> dict:
        """Health check endpoint.

        Returns:
            dict: Status object indicating the server is running.
        """
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    server = get_config().server
    uvicorn.run("app.main:app", host=server.host, port=server.port, reload=server.reload)
