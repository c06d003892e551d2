import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tripsync.core.config import APP_NAME, APP_VERSION, CORS_ORIGINS, SERVER_HOST, SERVER_PORT
from tripsync.core.errors import register_exception_handlers
from tripsync.core.logger import setup_logging
from tripsync.db.database import close_database_connection, init_indexes, test_connection
from tripsync.router.auth import router as auth_router
from tripsync.router.invites import router as invites_router
from tripsync.router.live import router as live_router
from tripsync.router.system import router as system_router
from tripsync.router.trips import router as trips_router
from tripsync.router.users import router as users_router

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: Test database connection
    logger.info("Starting up %s...", APP_NAME)
    if await test_connection():
        await init_indexes()
    yield
    # Shutdown: Close database connection
    logger.info("Shutting down %s...", APP_NAME)
    await close_database_connection()


app = FastAPI(title=APP_NAME, version=APP_VERSION, lifespan=lifespan)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Mount routers
app.include_router(system_router)
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(trips_router)
app.include_router(live_router)
app.include_router(invites_router)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=SERVER_HOST, port=SERVER_PORT)
