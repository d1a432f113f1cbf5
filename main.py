# main.py
import os
import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from api_hazards import router as hazards_router, evict_idle_sessions, stop_all_sessions, SESSION_TTL_SEC
from services.overpass import OVERPASS_URL, OVERPASS_TIMEOUT_SEC
from services.settings import HazardSettings, debug_enabled

# -----------------------------
# Env / logging
# -----------------------------
load_dotenv()

logging.basicConfig(
    level=logging.DEBUG if debug_enabled() else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("truckhazard")


async def _sweep_idle_sessions(interval_sec: float):
    while True:
        await asyncio.sleep(interval_sec)
        evict_idle_sessions()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Overpass endpoint: %s (timeout %.0fs)", OVERPASS_URL, OVERPASS_TIMEOUT_SEC)
    sweeper = asyncio.create_task(_sweep_idle_sessions(max(1.0, min(60.0, SESSION_TTL_SEC))))
    yield
    sweeper.cancel()
    stop_all_sessions()


# -----------------------------
# FastAPI setup
# -----------------------------
app = FastAPI(title="Truck Hazard Monitor", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # tighten for prod
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount feature routers
app.include_router(hazards_router)   # /hazards/*


@app.get("/health")
def health():
    return {"ok": True, "service": "truck-hazard-monitor", "routes": ["/hazards/sessions", "/hazards/restrictions"]}

@app.get("/_debug/env")
def debug_env():
    return {
        "ok": True,
        "overpass_url": OVERPASS_URL,
        "hazard_debug": debug_enabled(),
        "defaults": HazardSettings.from_env().to_dict(),
        "analytics_enabled": os.getenv("ANALYTICS_ENABLE", "0") == "1",
    }
