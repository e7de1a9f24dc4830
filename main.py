from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from db.client import get_durable_store
from routes.admin_routes import router as admin_router
from routes.appointment_routes import router as appointment_router
from routes.notification_routes import router as notification_router
from services.data_layer import build_data_layer

load_dotenv()

log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
log_level = getattr(logging, log_level_str, logging.INFO)
logging.basicConfig(level=log_level, format="%(asctime)s [%(levelname)s] %(message)s")
logger = logging.getLogger("medicalapp.api")
logger.info("Using LOG_LEVEL=%s", log_level_str)


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes", "on"}


def _allowed_origins() -> list[str]:
    raw = os.getenv("CORS_ALLOW_ORIGINS", "*")
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    return origins or ["*"]


STRICT_VALIDATION = _env_flag("STRICT_VALIDATION")

app = FastAPI(title="MedicalApp Data API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.data_layer = build_data_layer(
    get_durable_store(),
    strict_validation=STRICT_VALIDATION,
)

app.include_router(appointment_router)
app.include_router(notification_router)
app.include_router(admin_router)


@app.get("/")
async def read_root():
    """Root endpoint providing basic info."""
    return {"message": "MedicalApp Data API is running"}


@app.get("/ping")
def ping() -> dict[str, str]:
    """Lightweight health check endpoint."""
    return {"message": "pong"}
