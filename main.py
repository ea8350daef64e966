"""Reading Buddy progress engine – FastAPI application entry point."""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from fastapi import FastAPI

from app.config import settings
from app.database import async_session, init_db
from app.routes.progress import router as progress_router
from app.seed import seed_demo_profile
from app.services.streaks import reset_lapsed_streaks

# --- Configure logging so app.* loggers are visible alongside uvicorn ---
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(levelname)s:    %(name)s - %(message)s",
    stream=sys.stdout,
    force=True,  # override uvicorn's config
)

log = logging.getLogger(__name__)

# --- APScheduler for the nightly streak reset ---
scheduler = AsyncIOScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    # --- startup ---
    await init_db()
    async with async_session() as db:
        await seed_demo_profile(db)

    scheduler.add_job(
        reset_lapsed_streaks,
        trigger=CronTrigger(
            hour=settings.streak_reset_hour,
            minute=settings.streak_reset_minute,
            timezone=settings.streak_reset_timezone,
        ),
        id="streak_reset",
        name="Reset streaks that missed a day",
        replace_existing=True,
    )
    scheduler.start()
    log.info(
        "Scheduler started – streak reset at %02d:%02d %s",
        settings.streak_reset_hour, settings.streak_reset_minute, settings.streak_reset_timezone,
    )

    yield

    # --- shutdown ---
    scheduler.shutdown(wait=False)
    log.info("Scheduler shut down")


app = FastAPI(title="Reading Buddy", version="0.1.0", lifespan=lifespan)

app.include_router(progress_router, prefix="/api")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
