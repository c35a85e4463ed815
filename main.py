"""
Slacker API - Main Application Entry Point.

This module initializes and configures the FastAPI application for the Slacker
social backend. It sets up logging, database connections, middleware, the
burner-account cleanup schedule, and routes.

The application serves the Slacker web client: wallet-address profiles, posts
with likes and comments, notifications, media uploads, AI chat, and cached
crypto price listings.

Key Responsibilities:
- Configure and launch the FastAPI application.
- Set up middleware for correlation ids, error handling and request timing.
- Create database tables at startup; a database that cannot be reached at
  startup stops the process.
- Start and stop the cleanup scheduler with the application.
- Mount API routers for each functional area.

Architecture:
Routers in `api/` stay thin and delegate to services in `services/`, which own
the transactions. Third-party systems (price APIs, chat completions, media
storage) sit behind provider classes in `providers/`.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.chat import ai_router, chat_router
from api.crypto import router as crypto_router
from api.dependencies import get_cleanup_scheduler
from api.health_router import health_router, monitoring_router
from api.notifications import router as notifications_router
from api.posts import router as posts_router
from api.upload import router as upload_router
from api.users import router as users_router
from core.config import get_settings
from core.database import create_db_and_tables
from core.logging_config import get_logger, setup_logging
from core.middleware import (
    CorrelationMiddleware,
    ErrorHandlingMiddleware,
    PerformanceMiddleware,
    register_exception_handlers,
)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    setup_logging(settings)
    logger = get_logger("api.startup")
    try:
        await create_db_and_tables()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.critical(f"Database initialization failed: {e}")
        raise

    scheduler = get_cleanup_scheduler()
    if settings.cleanup_scheduler_enabled:
        scheduler.start()
    else:
        logger.info("Cleanup scheduler disabled")

    logger.info("Service startup completed")
    yield

    # Cleanup on shutdown
    logger.info("Shutting down Slacker API")
    scheduler.shutdown()
    logger.info("Cleanup completed")


app = FastAPI(
    title="Slacker API",
    description="Backend for the Slacker social app",
    version="1.0.0",
    lifespan=lifespan,
)


# CORS middleware (required for frontend communication)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(PerformanceMiddleware)
app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(CorrelationMiddleware)

register_exception_handlers(app)

logger = get_logger("api.main")

# Health routers first so monitoring stays reachable
app.include_router(health_router)
app.include_router(monitoring_router)

app.include_router(users_router)
app.include_router(posts_router)
app.include_router(notifications_router)
app.include_router(crypto_router)
app.include_router(upload_router)
app.include_router(ai_router)
app.include_router(chat_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=5000,
        reload=settings.environment == "development",
        log_level="info",
    )
