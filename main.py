import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from dal.image_dal import ImageDAL
from dal.session_dal import SessionDAL
from routes.chat_route import router as chat_router
from routes.image_route import router as image_router
from routes.session_route import router as session_router
from services.image_store import ImageStore
from services.openai.chat_service import ChatService
from services.workflow.controller import WorkflowController
from services.workflow.state_store import WorkflowStateStore
from utils.database_init import AsyncDatabaseInitializer

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file if present

LOGGER = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - the SQLite database (kept across restarts, at DATABASE_DIR/app.db)
      - the chat service (the OpenAI client itself is created on first use)
      - the data access objects and the workflow controller
    and attach them to `app.state`.
    """
    db_initializer = AsyncDatabaseInitializer()
    await db_initializer.ensure_database()
    app.state.db_initializer = db_initializer

    if not os.getenv("OPENAI_API_KEY"):
        LOGGER.warning("OPENAI_API_KEY is not set; chat requests will fail until it is configured")

    chat_service = ChatService()
    session_dal = SessionDAL(db_initializer)
    image_dal = ImageDAL(db_initializer)

    app.state.chat_service = chat_service
    app.state.session_dal = session_dal
    app.state.image_dal = image_dal
    app.state.workflow = WorkflowController(
        session_dal,
        chat_service,
        ImageStore(image_dal),
        WorkflowStateStore(),
    )

    try:
        yield
    finally:
        try:
            await chat_service.aclose()
        except Exception:
            LOGGER.warning("Failed to close the OpenAI client", exc_info=True)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application instance.
    """
    app = FastAPI(lifespan=lifespan)

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check that reports the database and OpenAI configuration.
        """
        has_db = hasattr(request.app.state, "db_initializer")
        has_openai = bool(os.getenv("OPENAI_API_KEY"))
        return {"ok": True, "db_initialized": has_db, "openai_available": has_openai}

    # Register application routers
    app.include_router(chat_router)
    app.include_router(session_router)
    app.include_router(image_router)

    return app


app = create_app()
