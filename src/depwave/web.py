"""JSON API over a DependencyResolver for the orchestration layer."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from fastapi import APIRouter, FastAPI, HTTPException, Request
from pydantic import BaseModel

from . import __version__
from .errors import CycleDetectedError, IssueNotFoundError, StoreUnavailableError
from .resolver import DependencyResolver, get_dependency_resolver

router = APIRouter(prefix="/api")


class DepAction(BaseModel):
    depends_on: str


def _resolver(req: Request) -> DependencyResolver:
    return req.app.state.resolver


def _unavailable(exc: StoreUnavailableError) -> HTTPException:
    return HTTPException(
        status_code=503,
        detail={"message": str(exc), "error": "store_unavailable"},
    )


@router.get("/health")
def api_health() -> dict[str, Any]:
    return {"ok": True, "version": __version__}


@router.get("/ready")
def api_ready(request: Request) -> dict[str, Any]:
    return _resolver(request).get_ready_issues().to_dict()


@router.get("/plan")
def api_plan(request: Request) -> dict[str, Any]:
    return _resolver(request).get_execution_order().to_dict()


@router.get("/cycles")
def api_cycles(request: Request) -> dict[str, Any]:
    return {"cycles": _resolver(request).detect_cycles()}


@router.get("/parallel")
def api_parallel(request: Request) -> dict[str, Any]:
    return _resolver(request).get_parallel_execution_set().to_dict()


@router.get("/issues/{issue_id}/validate")
def api_validate(request: Request, issue_id: str) -> dict[str, Any]:
    return _resolver(request).validate_execution(issue_id).to_dict()


@router.post("/issues/{issue_id}/deps")
def api_add_dep(request: Request, issue_id: str, body: DepAction) -> dict[str, Any]:
    try:
        added = _resolver(request).add_dependency(issue_id, body.depends_on)
    except IssueNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except CycleDetectedError as exc:
        raise HTTPException(
            status_code=409,
            detail={"message": str(exc), "cycle": list(exc.cycle)},
        ) from exc
    except StoreUnavailableError as exc:
        raise _unavailable(exc) from exc
    return {"ok": True, "changed": added}


@router.delete("/issues/{issue_id}/deps")
def api_remove_dep(request: Request, issue_id: str, body: DepAction) -> dict[str, Any]:
    try:
        removed = _resolver(request).remove_dependency(issue_id, body.depends_on)
    except IssueNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except StoreUnavailableError as exc:
        raise _unavailable(exc) from exc
    return {"ok": True, "changed": removed}


def create_app(resolver: DependencyResolver | None = None, *, working_dir: Path | None = None) -> FastAPI:
    app = FastAPI(title="depwave", version=__version__)
    if resolver is None:
        resolver = get_dependency_resolver(working_dir)
    app.state.resolver = resolver
    app.include_router(router)
    return app
