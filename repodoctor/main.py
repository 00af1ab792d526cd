"""
RepoDoctor FastAPI Application — Repository health diagnostics over HTTP.

  POST /scan         → issues, health score, CI verdict
  POST /fix/preview  → fix plan with unified diffs (dry run)
  POST /fix/apply    → transactional fix batch with rollback
  GET  /health       → {"status": "ok"}
"""

from __future__ import annotations

import logging

from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from repodoctor.api.routes.fix import router as fix_router
from repodoctor.api.routes.scan import router as scan_router
from repodoctor.config import settings
from repodoctor.core.analyzer_registry import ANALYZER_REGISTRY
from repodoctor.core.ruleset import available_presets
from repodoctor.errors import ConfigError, FsError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("repodoctor")

app = FastAPI(
    title="RepoDoctor",
    description="Repository health diagnostics: framework detection, analyzers, scoring and safe fixes",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(scan_router)
app.include_router(fix_router)


@app.exception_handler(FsError)
async def fs_error_handler(request: Request, exc: FsError):
    logger.error(f"Filesystem error on {request.url.path}: {exc}")
    return JSONResponse(status_code=400, content={"detail": exc.to_dict()})


@app.exception_handler(ConfigError)
async def config_error_handler(request: Request, exc: ConfigError):
    logger.error(f"Configuration error on {request.url.path}: {exc}")
    return JSONResponse(status_code=422, content={"detail": exc.to_dict()})


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": "1.0.0",
        "analyzers": sorted(ANALYZER_REGISTRY),
        "presets": available_presets(),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
