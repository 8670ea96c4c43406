"""FastAPI server exposing the closet, shuffle and sync operations."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from datetime import date as dt_date
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from closet_app.app import ClosetApp
from closet_app.logging_config import correlation_context
from logic.closet_queries import ClosetFilter
from logic.validation import (
    CategoryRequest,
    ImageRequest,
    ItemDraftRequest,
    ItemUpdateRequest,
    ModeRequest,
    OutfitConfirmRequest,
    SignInRequest,
    assignment_payload,
    items_payload,
    outfits_payload,
)
from models.clothing_item import item_to_dict
from models.errors import (
    AuthError,
    ClosetError,
    CloudWriteError,
    ItemNotFoundError,
    PolicyViolationError,
    StoreNotReadyError,
)
from models.outfit import outfit_to_dict
from models.taxonomy import parse_category, parse_season


def _status_for(exc: ClosetError) -> int:
    if isinstance(exc, StoreNotReadyError):
        return 503
    if isinstance(exc, PolicyViolationError):
        return 400
    if isinstance(exc, ItemNotFoundError):
        return 404
    if isinstance(exc, AuthError):
        return 401
    if isinstance(exc, CloudWriteError):
        return 503
    return 400


def create_app(closet: ClosetApp | None = None) -> FastAPI:
    """Build the HTTP surface around ``closet`` and start listening for auth."""

    closet_app = closet or ClosetApp()
    closet_app.start()

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        yield
        closet_app.close()

    app = FastAPI(title="Smart Closet", version="0.1.0", lifespan=lifespan)
    app.state.closet = closet_app

    @app.middleware("http")
    async def correlation_middleware(request: Request, call_next):
        incoming = request.headers.get("x-correlation-id") or uuid.uuid4().hex
        with correlation_context(incoming) as correlation_id:
            response = await call_next(request)
        response.headers["x-correlation-id"] = correlation_id
        return response

    @app.exception_handler(ClosetError)
    async def closet_error_handler(_: Request, exc: ClosetError) -> JSONResponse:
        return JSONResponse(status_code=_status_for(exc), content={"detail": str(exc)})

    def _require_loaded() -> None:
        if not closet_app.persistence.data_loaded:
            raise StoreNotReadyError("Your closet is still loading.")

    @app.get("/healthz")
    async def healthcheck() -> dict:
        """Readiness check including which backend is authoritative."""

        return {
            "status": "ok",
            "service": "smart-closet",
            "environment": closet_app.config.environment or "local",
            "mode": closet_app.mode,
            "loaded": closet_app.persistence.data_loaded,
            "signed_in": closet_app.principal is not None,
            "tagging_enabled": closet_app.tagger.enabled,
            "config_error": closet_app.config_error,
        }

    @app.get("/items")
    def list_items(
        category: Optional[str] = None,
        season: Optional[str] = None,
        color: Optional[str] = None,
        search: str = "",
    ) -> dict:
        _require_loaded()
        try:
            closet_filter = ClosetFilter(
                category_l1=parse_category(category) if category else None,
                season=parse_season(season) if season else None,
                color=color,
                search=search,
            )
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return {"items": items_payload(closet_app.closet(closet_filter))}

    @app.get("/trash")
    def list_trash() -> dict:
        _require_loaded()
        return {"items": items_payload(closet_app.trash())}

    @app.post("/items", status_code=201)
    def create_item(request: ItemDraftRequest) -> dict:
        item = closet_app.create_item(request.to_draft())
        # Signed-in writes only show up once the cloud stream echoes them.
        return {"item": item_to_dict(item), "mode": closet_app.mode}

    @app.put("/items/{item_id}")
    def edit_item(item_id: str, request: ItemDraftRequest) -> dict:
        closet_app.edit_item(item_id, request.to_draft())
        return {"status": "ok", "mode": closet_app.mode}

    @app.patch("/items/{item_id}")
    def update_item(item_id: str, request: ItemUpdateRequest) -> dict:
        closet_app.update_item(item_id, request.changes())
        return {"status": "ok", "mode": closet_app.mode}

    @app.post("/items/{item_id}/trash")
    def trash_item(item_id: str) -> dict:
        closet_app.soft_delete(item_id)
        return {"status": "ok"}

    @app.post("/items/{item_id}/restore")
    def restore_item(item_id: str) -> dict:
        closet_app.restore(item_id)
        return {"status": "ok"}

    @app.delete("/items/{item_id}")
    def delete_item(item_id: str) -> dict:
        closet_app.hard_delete(item_id)
        return {"status": "ok"}

    @app.get("/categories")
    def list_categories() -> dict:
        return {"categories": closet_app.categories.to_dict()}

    @app.post("/categories")
    def add_category(request: CategoryRequest) -> dict:
        added = closet_app.add_category(request.category_l1, request.subtype)
        return {"added": added, "categories": closet_app.categories.to_dict()}

    def _shuffle_payload() -> dict:
        state = closet_app.shuffle.state()
        return {
            "mode": state["mode"].value,
            "outfit": assignment_payload(state["outfit"]),
            "locks": state["locks"],
            "diagnostics": state["diagnostics"],
        }

    @app.post("/shuffle")
    def shuffle() -> dict:
        _require_loaded()
        closet_app.shuffle.shuffle()
        return _shuffle_payload()

    @app.post("/shuffle/mode")
    def switch_mode(request: ModeRequest) -> dict:
        _require_loaded()
        closet_app.shuffle.switch_mode(request.mode)
        return _shuffle_payload()

    @app.post("/shuffle/locks/{slot}")
    def toggle_lock(slot: str) -> dict:
        try:
            locked = closet_app.shuffle.toggle_lock(slot)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return {"slot": slot, "locked": locked, **_shuffle_payload()}

    @app.post("/outfits", status_code=201)
    def confirm_outfit(request: OutfitConfirmRequest) -> dict:
        outfit = closet_app.shuffle.confirm(closet_app.archive, rating=request.rating)
        return {"outfit": outfit_to_dict(outfit)}

    @app.get("/outfits")
    def outfits_for_date(date: dt_date) -> dict:
        return {"date": date.isoformat(), "outfits": outfits_payload(closet_app.archive.for_date(date))}

    @app.post("/sync")
    def sync() -> dict:
        report = closet_app.sync_local_to_cloud()
        return {
            "total": report.total,
            "succeeded": report.succeeded,
            "failed": [{"item_id": failure.item_id, "reason": failure.reason} for failure in report.failed],
        }

    @app.post("/cloud-config")
    def configure_cloud(payload: Dict[str, Any] = Body(...)) -> dict:
        cloud_config = closet_app.configure_cloud(payload)
        return {
            "project_id": cloud_config.project_id,
            "cloud_enabled": closet_app.cloud is not None,
            "config_error": closet_app.config_error,
            "mode": closet_app.mode,
        }

    @app.delete("/cloud-config")
    def clear_cloud() -> dict:
        closet_app.clear_cloud()
        return {"cloud_enabled": False, "mode": closet_app.mode}

    @app.post("/auth/sign-in")
    def sign_in(request: SignInRequest) -> dict:
        if request.sign_up:
            principal = closet_app.auth.sign_up(request.email, request.password)
        else:
            principal = closet_app.auth.sign_in(request.email, request.password)
        return {"uid": principal.uid, "mode": closet_app.mode}

    @app.post("/auth/sign-out")
    def sign_out() -> dict:
        closet_app.auth.sign_out()
        return {"mode": closet_app.mode}

    @app.post("/tagging/analyze")
    def analyze(request: ImageRequest) -> dict:
        tags = closet_app.analyze_image(request.image_data)
        if tags is None:
            return {"suggestion": None}
        return {
            "suggestion": {
                "categoryL1": tags.category_l1,
                "categoryL2": tags.category_l2,
                "color": tags.color,
                "season": tags.season,
            }
        }

    @app.post("/tagging/remove-background")
    def remove_background(request: ImageRequest) -> dict:
        return {"image_data": closet_app.remove_background(request.image_data)}

    return app


def get_app() -> FastAPI:
    """ASGI factory: ``uvicorn server.api:get_app --factory``."""

    return create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("server.api:get_app", factory=True, host="0.0.0.0", port=8080, reload=False)
