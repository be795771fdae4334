import time
from fastapi import FastAPI, Depends
from sqlalchemy import func
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from repwatch.core.config import get_settings
from repwatch.core.database import get_db
from repwatch.db.init_db import init_db
from repwatch.db.models import RepresentativeTelemetry
from repwatch.services.import_service import trigger_import_job
from repwatch.api.routes import router as api_router

from prometheus_fastapi_instrumentator import Instrumentator
from repwatch.core.logging_config import setup_logging, get_logger

# Setup Structured Logging
setup_logging()
logger = get_logger("main")

app = FastAPI(title="repwatch")

# Instrument Prometheus
Instrumentator().instrument(app).expose(app)

@app.on_event("startup")
async def startup_event():
    try:
        await init_db()
    except Exception as e:
        logger.error("db_init_failed", error=str(e))
    if get_settings().RUN_IMPORT_ON_STARTUP:
        logger.info("startup_event", msg="Running telemetry import")
        try:
            await trigger_import_job()
        except Exception as e:
            logger.error("import_startup_failed", error=str(e))

@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    start_time = time.time()
    db_status = "unhealthy"
    import_status = "unknown"
    last_run = None

    try:
        # Check DB connectivity
        await db.execute(select(1))
        db_status = "connected"

        # Every record of a run shares the run timestamp
        result = await db.execute(select(func.max(RepresentativeTelemetry.timestamp)))
        last_run = result.scalar()
        import_status = "no_runs_yet" if last_run is None else "success"
    except Exception as e:
        db_status = f"error: {str(e)}"

    latency = (time.time() - start_time) * 1000

    return {
        "status": "ok",
        "db_connectivity": db_status,
        "import_status": import_status,
        "last_run": last_run,
        "latency_ms": round(latency, 2)
    }

app.include_router(api_router)
