import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from skillsync.infrastructure import database
from skillsync.infrastructure.notifications import NOTIFICATIONS_TABLE
from skillsync.infrastructure.notifications.publisher import (
    notification_publisher,
    server_change_feed,
)
from skillsync.interfaces.api.routes import register_routes

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the tables and forward row changes to websockets while running."""

    database.initialize_database()
    handle = notification_publisher.attach(server_change_feed, NOTIFICATIONS_TABLE)
    logger.info("Notification service started")
    yield
    server_change_feed.unsubscribe(handle)
    database.engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)
    return app


app = create_app()
