# HTTP surface for the browser extension: incident ingestion, stats and settings sync

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from services import config_manager
from services.database_manager import DatabaseManager
from services.errors import (
    AuthenticationError,
    ComputationError,
    DashboardError,
    NotFoundError,
    ValidationError,
)
from services.ingestion import IngestionService

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    AuthenticationError: 401,
    ValidationError: 400,
    NotFoundError: 404,
    ComputationError: 422,
}


class SettingsUpdate(BaseModel):
    notificationSettings: Dict[str, Any]
    phone: Optional[str] = None


class SyncRequest(BaseModel):
    extensionId: str


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    token = authorization.replace("Bearer ", "", 1).strip()
    return token or None


def create_app(db_manager: Optional[DatabaseManager] = None) -> FastAPI:
    app = FastAPI(
        title="SafeGuard Kids API",
        description="Receives incidents from the browser extension",
        version="1.0.0",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    db_manager = db_manager or DatabaseManager()
    db_manager.create_tables()
    service = IngestionService(db_manager)
    app.state.ingestion = service

    @app.exception_handler(DashboardError)
    async def dashboard_error_handler(request: Request, exc: DashboardError):
        status = next((code for kind, code in ERROR_STATUS.items() if isinstance(exc, kind)), 500)
        if status >= 500:
            logger.error("Unhandled dashboard error on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=status, content={"error": str(exc)})

    @app.get("/health", tags=["system"])
    def health():
        return {"status": "ok"}

    @app.post("/api/incidents", tags=["incidents"])
    async def receive_incident(request: Request, authorization: Optional[str] = Header(default=None)):
        api_key = bearer_token(authorization)
        service.authenticate(api_key)
        try:
            payload = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise ValidationError("Request body must be JSON")
        return service.submit(api_key, payload)

    @app.get("/api/incidents", tags=["incidents"])
    def incidents_status(authorization: Optional[str] = Header(default=None)):
        service.authenticate(bearer_token(authorization))
        return {
            "status": "ok",
            "message": "SafeGuard Kids API is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/api/stats", tags=["stats"])
    def incident_stats(
        childId: Optional[int] = None,
        startDate: Optional[int] = None,
        endDate: Optional[int] = None,
        authorization: Optional[str] = Header(default=None),
    ):
        user = service.authenticate(bearer_token(authorization))
        summary = service.incident_manager.get_stats(
            user.user_id,
            child_id=childId,
            start_date=startDate,
            end_date=endDate,
        )
        return summary.as_dict()

    @app.get("/api/settings", tags=["settings"])
    def get_settings(authorization: Optional[str] = Header(default=None)):
        api_key = bearer_token(authorization)
        service.authenticate(api_key)
        return service.auth_manager.get_settings_by_api_key(api_key)

    @app.put("/api/settings", tags=["settings"])
    def update_settings(body: SettingsUpdate, authorization: Optional[str] = Header(default=None)):
        api_key = bearer_token(authorization)
        service.authenticate(api_key)
        service.auth_manager.update_settings_by_api_key(api_key, body.notificationSettings, body.phone)
        return {"success": True}

    @app.post("/api/sync", tags=["children"])
    def sync_extension(body: SyncRequest, authorization: Optional[str] = Header(default=None)):
        user = service.authenticate(bearer_token(authorization))
        child = service.child_manager.get_child_by_extension(body.extensionId)
        if not child or child.data.get("user_id") != user.user_id:
            raise NotFoundError("Child not found")
        service.child_manager.update_sync(body.extensionId)
        return {"success": True}

    return app


def main() -> None:
    settings = config_manager.load_settings()
    config_manager.configure_logging(settings)
    logger.info("API server running on http://%s:%s", settings.api_host, settings.api_port)
    uvicorn.run(create_app(), host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    main()
