from contextlib import asynccontextmanager
from typing import List

from fastapi import FastAPI, Header, HTTPException
from loguru import logger

from src.config import get_settings
from src.db.database import init_db
from src.scheduler.harness import SchedulerHandle
from src.scheduler.runner import start_schedulers, stop_schedulers

settings = get_settings()
schedulers: List[SchedulerHandle] = []


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting up...")
    init_db()

    # 資料庫就緒後才啟動排程器
    schedulers.extend(start_schedulers())

    yield

    stop_schedulers(schedulers)
    schedulers.clear()
    logger.info("Shutting down...")


# Disable interactive docs in production
docs_url = None if settings.is_production else "/docs"
redoc_url = None if settings.is_production else "/redoc"

app = FastAPI(
    title="Poppik Background Schedulers",
    description="Cashback maturation, offer/contest expiry and scheduled push notifications",
    version="0.1.0",
    lifespan=lifespan,
    docs_url=docs_url,
    redoc_url=redoc_url,
)


@app.get("/health")
async def health_check():
    return {"status": "ok"}


@app.get("/api/admin/schedulers")
async def scheduler_status(x_admin_key: str = Header(None)):
    # Require admin key in production
    if settings.is_production:
        if not settings.admin_api_key:
            raise HTTPException(status_code=503, detail="Admin API not configured")
        if x_admin_key != settings.admin_api_key:
            raise HTTPException(status_code=401, detail="Invalid admin key")

    jobs = []
    for handle in schedulers:
        next_run = handle.next_run_time
        jobs.append(
            {
                "name": handle.name,
                "enabled": handle.enabled,
                "running": handle.running,
                "interval_ms": handle.interval_ms,
                "next_run": str(next_run) if next_run else None,
            }
        )

    return {"schedulers": jobs}
