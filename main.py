import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from adapters.entry.http.autopilot_router import router as autopilot_router
from config.settings import settings
from workers.autopilot_supervisor import AutoPilotSupervisor


def _setup_logging() -> None:
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    _setup_logging()
    logger = logging.getLogger(__name__)
    logger.info("Starting %s (lifespan startup)...", settings.APP_NAME)

    supervisor = AutoPilotSupervisor()
    try:
        engine = await supervisor.start()
    except Exception:
        logger.exception("AutoPilot supervisor failed to start.")
        raise

    # everything the routers need lives on app.state
    app.state.supervisor = supervisor
    app.state.engine = engine

    try:
        yield
    finally:
        logger.info("Shutting down %s (lifespan shutdown)...", settings.APP_NAME)
        await supervisor.stop()
        logger.info("AutoPilot supervisor stopped.")


app = FastAPI(title=settings.APP_NAME, version="0.1.0", lifespan=lifespan)

# routers are included outside the lifespan
app.include_router(autopilot_router)


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}
