"""HTTP trigger surface (FastAPI)."""

from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse

from . import __version__
from .service import SyncService


def create_app(service: Optional[SyncService] = None) -> FastAPI:
    """Build the API around a SyncService.

    Routes:
        POST /sync          run every configured site
        POST /sync/{site}   run one site
        GET  /health        last-run status per site
    """
    service = service or SyncService()

    app = FastAPI(title="show-sync", version=__version__)
    app.state.service = service

    @app.post("/sync")
    async def sync_all():
        status, body = await service.trigger_all()
        return JSONResponse(status_code=status, content=body)

    @app.post("/sync/{site}")
    async def sync_site(site: str):
        key = site.lower()
        if key not in service.sites:
            raise HTTPException(status_code=404, detail=f"Unknown site: {site}")
        status, body = await service.trigger(key)
        return JSONResponse(status_code=status, content=body)

    @app.get("/health")
    async def health():
        return service.health.get_status()

    return app
