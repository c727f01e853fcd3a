"""FastAPI app exposing the server endpoints under /api."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Body, FastAPI, HTTPException

if TYPE_CHECKING:
    from codescope.server import CodeScopeServer

ERROR_STATUS: dict[str, int] = {
    "INVALID_PARAMS": 400,
    "INVALID_REQUEST": 400,
    "PATH_BLOCKED": 403,
    "UNKNOWN_ENDPOINT": 404,
    "NOT_FOUND": 404,
    "CONTENT_UNAVAILABLE": 422,
    "DEADLINE_EXCEEDED": 504,
}


def unwrap(envelope: dict[str, object]) -> dict[str, Any]:
    """Return the result of a successful envelope or raise the matching HTTP error."""
    if envelope.get("ok") is True:
        result = envelope.get("result")
        return result if isinstance(result, dict) else {}
    error = envelope.get("error")
    code = "INTERNAL_ERROR"
    message = "Unhandled server error."
    if isinstance(error, dict):
        code = str(error.get("code", code))
        message = str(error.get("message", message))
    raise HTTPException(
        status_code=ERROR_STATUS.get(code, 500),
        detail={"code": code, "message": message, "request_id": envelope.get("request_id")},
    )


def _present(**params: object) -> dict[str, Any]:
    return {key: value for key, value in params.items() if value is not None}


def build_router(server: CodeScopeServer) -> APIRouter:
    router = APIRouter(prefix="/api", tags=["codescope"])

    @router.get("/search")
    def search(
        q: str | None = None,
        fileLimit: str | None = None,
        moduleLimit: str | None = None,
    ) -> dict[str, Any]:
        arguments = _present(q=q, fileLimit=fileLimit, moduleLimit=moduleLimit)
        return unwrap(server.dispatch("search", arguments))

    @router.get("/grep")
    def grep(
        q: str | None = None,
        limit: str | None = None,
        maxPerFile: str | None = None,
        ext: str | None = None,
        cat: str | None = None,
    ) -> dict[str, Any]:
        arguments = _present(q=q, limit=limit, maxPerFile=maxPerFile, ext=ext, cat=cat)
        return unwrap(server.dispatch("grep", arguments))

    @router.get("/find")
    def find(
        q: str | None = None,
        limit: str | None = None,
        ext: str | None = None,
        cat: str | None = None,
    ) -> dict[str, Any]:
        return unwrap(server.dispatch("find", _present(q=q, limit=limit, ext=ext, cat=cat)))

    @router.post("/context")
    def context(payload: dict[str, Any] | None = Body(default=None)) -> dict[str, Any]:
        return unwrap(server.dispatch("context", dict(payload or {})))

    @router.get("/file")
    def file(path: str | None = None) -> dict[str, Any]:
        return unwrap(server.dispatch("file", _present(path=path)))

    @router.post("/files")
    def files(payload: dict[str, Any] | None = Body(default=None)) -> dict[str, Any]:
        return unwrap(server.dispatch("files", dict(payload or {})))

    @router.get("/imports")
    def imports(path: str | None = None, direction: str | None = None) -> dict[str, Any]:
        return unwrap(server.dispatch("imports", _present(path=path, direction=direction)))

    @router.get("/deps")
    def deps() -> dict[str, Any]:
        return unwrap(server.dispatch("deps", {}))

    @router.get("/manifest")
    def manifest() -> dict[str, Any]:
        return unwrap(server.dispatch("manifest", {}))

    @router.get("/tree")
    def tree() -> dict[str, Any]:
        return unwrap(server.dispatch("tree", {}))

    @router.get("/status")
    def status() -> dict[str, Any]:
        return unwrap(server.dispatch("status", {}))

    @router.post("/refresh")
    def refresh() -> dict[str, Any]:
        return unwrap(server.dispatch("refresh", {}))

    @router.get("/audit")
    def audit(since: str | None = None, limit: str | None = None) -> dict[str, Any]:
        return unwrap(server.dispatch("audit_log", _present(since=since, limit=limit)))

    return router


def create_app(server: CodeScopeServer) -> FastAPI:
    """Build the HTTP app; every route goes through the server's dispatch seam."""
    app = FastAPI(title="codescope")
    app.include_router(build_router(server))
    app.state.codescope = server
    return app
