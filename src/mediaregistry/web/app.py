from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import Any

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse

from mediaregistry.application.bootstrap import build_registry_service
from mediaregistry.application.services.registry_service import RegistryService, UploadedFile
from mediaregistry.core.config import AppPaths, RegistrySettings, load_paths, load_settings
from mediaregistry.core.errors import (
    ConfigurationError,
    NotFoundError,
    RegistryError,
    StorageError,
    UpstreamError,
    ValidationError,
)
from mediaregistry.core.files import ensure_directory, remove_file_quietly
from mediaregistry.infrastructure.remote.base import RemoteAssetStore

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: dict[type[RegistryError], int] = {
    ValidationError: 400,
    NotFoundError: 404,
    UpstreamError: 502,
    StorageError: 500,
    ConfigurationError: 500,
}


def _status_for(exc: RegistryError) -> int:
    for error_type, status in _STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return status
    return 500


async def spool_upload(file: UploadFile | None, uploads_dir: Path) -> UploadedFile | None:
    if file is None:
        return None
    ensure_directory(uploads_dir)
    suffix = Path(file.filename or "upload.bin").suffix
    with tempfile.NamedTemporaryFile(delete=False, suffix=suffix, dir=uploads_dir) as tmp:
        temp_path = Path(tmp.name)
        try:
            tmp.write(await file.read())
        except BaseException:
            tmp.close()
            remove_file_quietly(temp_path)
            raise
    return UploadedFile(path=temp_path, filename=file.filename, temporary=True)


def create_app(
    paths: AppPaths,
    settings: RegistrySettings | None = None,
    remote_store: RemoteAssetStore | None = None,
    registry: RegistryService | None = None,
) -> FastAPI:
    settings = settings or load_settings()
    app = FastAPI(title="Media Registry", version="0.1.0")
    service = registry or build_registry_service(paths, settings, remote_store=remote_store)
    app.state.registry = service

    @app.exception_handler(RegistryError)
    async def _registry_error_handler(request: Request, exc: RegistryError) -> JSONResponse:
        status = _status_for(exc)
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        body: dict[str, Any] = {"success": False, "code": exc.code, "message": str(exc)}
        if settings.debug:
            body["error"] = f"{type(exc).__name__}: {exc}"
        return JSONResponse(status_code=status, content=body)

    @app.exception_handler(Exception)
    async def _unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        body: dict[str, Any] = {"success": False, "code": "internal_error", "message": "Internal server error"}
        if settings.debug:
            body["error"] = f"{type(exc).__name__}: {exc}"
        return JSONResponse(status_code=500, content=body)

    def _list_payload(collection: str, key: str, message: str) -> dict[str, Any]:
        records = service.read_collection(collection)
        return {
            "success": True,
            "message": message,
            "data": {key: [record.to_dict() for record in records]},
        }

    def _delete_payload(collection: str, identifier: str, message: str) -> dict[str, Any]:
        removed = service.delete_asset(collection, identifier)
        return {"success": True, "message": message, "data": {"removed": removed.to_dict()}}

    @app.get("/api/health")
    def api_health() -> dict[str, Any]:
        return {"success": True, "status": "OK"}

    @app.get("/api/gallery")
    def api_gallery() -> dict[str, Any]:
        return _list_payload("gallery", "images", "Gallery images retrieved successfully")

    @app.post("/api/upload/gallery")
    async def api_upload_gallery(file: UploadFile | None = File(None)) -> dict[str, Any]:
        upload = await spool_upload(file, paths.uploads_dir)
        record = service.create_asset("gallery", upload)
        return {
            "success": True,
            "message": "Gallery image uploaded successfully",
            "data": record.to_dict(),
        }

    @app.delete("/api/gallery/{identifier:path}")
    @app.delete("/api/upload/gallery/{identifier:path}")
    def api_delete_gallery(identifier: str) -> dict[str, Any]:
        return _delete_payload("gallery", identifier, "Gallery image deleted successfully")

    @app.get("/api/projects")
    def api_projects() -> dict[str, Any]:
        return _list_payload("projects", "projects", "Projects retrieved successfully")

    @app.post("/api/upload/projects")
    async def api_upload_project(
        file: UploadFile | None = File(None),
        title: str | None = Form(None),
        category: str | None = Form(None),
        description: str | None = Form(None),
    ) -> dict[str, Any]:
        upload = await spool_upload(file, paths.uploads_dir)
        record = service.create_asset(
            "projects",
            upload,
            {"title": title, "category": category, "description": description},
        )
        return {
            "success": True,
            "message": "Project image uploaded successfully",
            "data": {"project": record.to_dict()},
        }

    @app.delete("/api/projects/{identifier:path}")
    def api_delete_project(identifier: str) -> dict[str, Any]:
        return _delete_payload("projects", identifier, "Project deleted successfully")

    @app.post("/api/upload/resume")
    async def api_upload_resume(file: UploadFile | None = File(None)) -> dict[str, Any]:
        upload = await spool_upload(file, paths.uploads_dir)
        result = service.upload_document(upload)
        return {"success": True, "fileUrl": result.url}

    return app


def create_app_from_env() -> FastAPI:
    """App factory for ``uvicorn --reload``, configured from the environment."""
    return create_app(load_paths(), load_settings())
