import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware

from auth import router as auth_router
from core import db, settings
from core.logging_config import configure_logging
from prediction import router as prediction_router
from prediction import runner

logger = logging.getLogger(__name__)

DEFAULT_CORS_ORIGINS = [
    "http://localhost:5501",
    "http://127.0.0.1:5501",
]


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging()
    # A missing or broken model aborts startup (ModelLoadError propagates).
    await run_in_threadpool(runner.init_runner)
    try:
        await db.init_pool()
        try:
            if settings.env_bool("DB_INIT_SCHEMA", True):
                await db.init_schema()
            logger.info("api_started model=%s", runner.runner().model_path)
            yield
        finally:
            await db.close_pool()
    finally:
        runner.close_runner()


app = FastAPI(lifespan=lifespan)

# Allow the static frontend to call this API from the browser.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.env_list("CORS_ALLOW_ORIGINS", DEFAULT_CORS_ORIGINS),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(prediction_router.router, tags=["prediction"])
app.include_router(auth_router.router, tags=["auth"])


@app.get("/health")
def health() -> dict:
    return {"status": "ok", "model_loaded": runner.is_ready()}


@app.get("/")
def root() -> dict:
    return {"message": "image classification api"}
