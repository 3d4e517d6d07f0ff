import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api_routers.v1 import api_router
from app.features.health.routes.health import router as health_router
from app.features.scan.services.device.device_service import seed_default_device_configs
from app.features.scan.services.guidance.guidance_service import seed_default_guidance_levels
from app.platform.db.session import SessionLocal, init_db
from app.platform.exceptions import add_exception_handlers

# Configure logging to show INFO level messages
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    db = SessionLocal()
    try:
        seeded = seed_default_device_configs(db)
        if seeded:
            logger.info(f"Seeded {seeded} default device configurations")
        seed_default_guidance_levels(db)
    finally:
        db.close()
    yield


app = FastAPI(
    title="Accessibility Scanner API",
    description="API for crawling websites and running axe-core accessibility scans",
    version="1.0.0",
    lifespan=lifespan,
)


# Root endpoint for basic info
@app.get("/", tags=["Info"])
def root():
    return {
        "app_name": "Accessibility Scanner API",
        "description": "Crawls a site, replays setup steps and scores every page against WCAG rules.",
        "version": "1.0.0",
        "docs_url": "/docs",
        "api_base": "/api/v1",
    }


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

add_exception_handlers(app)

app.include_router(health_router)
app.include_router(api_router, prefix="/api/v1")
