# backend/efiledb/main.py
import logging
import os
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .apps.accounts.router_public import router as accounts_public_router
from .apps.accounts.router import router as accounts_router
from .apps.audit.router import router as audit_router
from .apps.efiling.router import router as efiling_router
from .apps.notifications.router import router as notifications_router
from .apps.reference.router import router as reference_router
from .apps.signatures.router import router as signatures_router
from .apps.templates.router import router as templates_router
from .apps.work_requests.router import router as work_requests_router
from .utils.uploads import UPLOAD_ROOT, UPLOAD_URL_PREFIX

logging.basicConfig(level=os.getenv("LOG_LEVEL", "info").upper())


def _allowed_origins() -> List[str]:
    """
    Parse CORS_ALLOWED_ORIGINS from env.

    Accepts comma-separated origins. If unset, defaults to local dev ports.
    """
    raw = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if raw:
        origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
        if origins:
            return origins
    return [
        "http://127.0.0.1:3000",
        "http://localhost:3000",
        "http://localhost:5173",
    ]


app = FastAPI(title="E-Filing API", version="1.0.0")
cors_origins = _allowed_origins()
allow_credentials = "*" not in cors_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["health"])
def read_root():
    return {"status": "ok", "message": "E-Filing backend is running"}


@app.get("/health", tags=["health"])
def health():
    return {"status": "ok"}


app.include_router(accounts_public_router)
app.include_router(accounts_router)
app.include_router(efiling_router)
app.include_router(signatures_router)
app.include_router(templates_router)
app.include_router(reference_router)
app.include_router(work_requests_router)
app.include_router(notifications_router)
app.include_router(audit_router)

app.mount(UPLOAD_URL_PREFIX, StaticFiles(directory=str(UPLOAD_ROOT), check_dir=False), name="uploads")
