"""
Energy Planner Form Relay
FastAPI application that relays website form submissions as emails.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_listen_port, get_mail_settings
from app.modules import MODULES
from app.routers import submissions
from app.services.mailer import SmtpMailTransport

# Configure logging to output to console
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def get_cors_origins() -> List[str]:
    """
    Build the list of allowed CORS origins.

    Origins are read from the CORS_ORIGINS environment variable as a
    comma-separated list, e.g.:
        CORS_ORIGINS=https://www.energyplanner.it,https://energyplanner.it

    When unset, every origin is allowed: the forms are embedded on several
    sites. Duplicates are removed while preserving order.
    """
    cors_env = os.getenv("CORS_ORIGINS", "").strip()
    if not cors_env:
        return ["*"]

    seen: set = set()
    origins: List[str] = []
    for origin in (o.strip() for o in cors_env.split(",")):
        if origin and origin not in seen:
            seen.add(origin)
            origins.append(origin)
    return origins


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Create the shared mail transport once for the whole process.

    Handlers get it through app.routers.submissions.get_mail_transport.
    """
    settings = get_mail_settings()
    app.state.mail_transport = SmtpMailTransport(settings)
    if not settings.username or not settings.password:
        logger.warning(
            "EMAIL_USER / EMAIL_PASS not set; every submission will fail to send"
        )
    logger.info(
        f"Form relay ready: {len(MODULES)} form modules, SMTP {settings.host}:{settings.port}"
    )
    yield


app = FastAPI(
    title="Energy Planner Form Relay",
    description="Relays website form submissions and attachments as emails",
    version=VERSION,
    lifespan=lifespan,
)

origins = get_cors_origins()
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    # Browsers refuse credentialed requests with a wildcard origin.
    allow_credentials=origins != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(submissions.router)


@app.get("/")
async def root():
    return {"message": "Energy Planner Form Relay", "version": VERSION}


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    port = get_listen_port()
    logger.info(f"Server avviato su http://localhost:{port}")
    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=port)
