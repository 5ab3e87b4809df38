import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(message)s"
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Breach Monitor API",
    version="1.0.0",
)

from app.middleware.security import SecurityLoggingMiddleware
app.add_middleware(SecurityLoggingMiddleware)

configured_origins = os.getenv("CORS_ORIGINS", "").strip()
if configured_origins:
    allow_origins = [origin.strip() for origin in configured_origins.split(",") if origin.strip()]
else:
    allow_origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def startup():
    logger.info("Breach Monitor API starting up")

    from app.db import init_db
    init_db()

    logger.info("Startup completed")


from app.routes.monitoring import router as monitoring_router

app.include_router(monitoring_router, prefix="/api")


@app.get("/health")
def health():
    return {"status": "ok"}
