from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from apscheduler.schedulers.asyncio import AsyncIOScheduler
import logging

from chemdose.config import settings
from chemdose.api import tanks, readings, supplies, parameters, alerts, notes, imports, analysis
from chemdose.tasks.sg_recalculation import recalculate_specific_gravity_job


# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Create scheduler
scheduler = AsyncIOScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting application...")
    scheduler.start()

    scheduler.add_job(
        recalculate_specific_gravity_job,
        'cron',
        hour=settings.sg_recalc_hour,
        minute=0,
        id='sg_recalculation',
        replace_existing=True
    )
    logger.info(f"Scheduled specific-gravity recalculation for {settings.sg_recalc_hour:02d}:00")

    yield
    # Shutdown
    logger.info("Shutting down application...")
    scheduler.shutdown()


app = FastAPI(
    title="Chemical Dosing Tracker",
    description="Tank levels, chemical contracts and actual vs. theoretical dosing",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(tanks.router, prefix="/api/tanks", tags=["Tanks"])
app.include_router(readings.router, prefix="/api/readings", tags=["Readings"])
app.include_router(supplies.router, prefix="/api/supplies", tags=["Contracts"])
app.include_router(parameters.router, prefix="/api/params", tags=["Production Parameters"])
app.include_router(alerts.router, prefix="/api/alerts", tags=["Alerts"])
app.include_router(notes.router, prefix="/api/notes", tags=["Notes"])
app.include_router(imports.router, prefix="/api/import", tags=["Import"])
app.include_router(analysis.router, prefix="/api/analysis", tags=["Analysis"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


@app.get("/")
async def root():
    return {"message": "Chemical Dosing Tracker API", "docs": "/docs"}
