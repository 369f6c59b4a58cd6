import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from loguru import logger

from fitplan.api.admin.plans import router as admin_plans_router
from fitplan.api.admin.subscriptions import router as admin_subscriptions_router
from fitplan.api.me import router as me_router
from fitplan.api.workouts import router as workouts_router
from fitplan.core.logger import setup_logger
from fitplan.db.session import init_db


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Configure logging and make sure tables exist before serving requests."""
    setup_logger()
    logger.info("Ensuring database tables exist")
    await asyncio.to_thread(init_db)
    logger.info("Database tables verified")
    yield
    logger.info("Shutting down")


app = FastAPI(title="Fitplan", lifespan=lifespan)

app.include_router(me_router)
app.include_router(workouts_router)
app.include_router(admin_plans_router)
app.include_router(admin_subscriptions_router)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests."""
    logger.debug(f"Request: {request.method} {request.url.path}")
    response = await call_next(request)
    logger.debug(f"Response: {response.status_code} for {request.method} {request.url.path}")
    return response
