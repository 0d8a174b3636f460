"""FastAPI application for the DealsList admin service."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from dealslist.clients.gmail_client import GmailClient
from dealslist.clients.openai_client import OpenAIClient
from dealslist.clients.postgres_client import DealsTable
from dealslist.pipeline.pipeline import DealImportPipeline
from dealslist.repository import DealRepository

from .config import get_settings
from .responses import install_error_handlers
from .routes.deals import router as deals_router
from .routes.emails import router as emails_router
from .routes.health import router as health_router

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize persistent clients at startup, clean up at shutdown."""
    settings = get_settings()

    logger.info("lifespan.startup", table=settings.DEALS_TABLE_NAME)

    # Postgres: deals table
    table = DealsTable(settings.DATABASE_URL, table_name=settings.DEALS_TABLE_NAME)
    await table.connect()
    await table.setup_schema()

    # OpenAI: deal extraction
    openai = OpenAIClient(
        api_key=settings.OPENAI_API_KEY,
        chat_model=settings.OPENAI_CHAT_MODEL,
    )

    # Gmail: optional, only the inbox endpoints need it
    gmail: GmailClient | None = None
    if settings.gmail_configured:
        gmail = GmailClient(
            client_id=settings.GMAIL_CLIENT_ID,
            client_secret=settings.GMAIL_CLIENT_SECRET,
            refresh_token=settings.GMAIL_REFRESH_TOKEN,
            token_uri=settings.GMAIL_TOKEN_URI,
        )
        logger.info("lifespan.gmail_ready")
    else:
        logger.warning("lifespan.gmail_not_configured")

    # Store on app.state for request handlers
    app.state.table = table
    app.state.openai = openai
    app.state.gmail = gmail
    app.state.repository = DealRepository(table)
    app.state.pipeline = DealImportPipeline.from_clients(openai, table, gmail_client=gmail)

    logger.info("lifespan.ready")
    yield

    # Shutdown
    logger.info("lifespan.shutdown")
    await openai.close()
    await table.close()


app = FastAPI(
    title="dealslist",
    description="Deals admin API with Gmail → OpenAI deal import",
    lifespan=lifespan,
)

install_error_handlers(app)
app.include_router(health_router)
app.include_router(deals_router)
app.include_router(emails_router)
