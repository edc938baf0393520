"""Entry point for the FastAPI-powered streamTV backend."""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.sessions import SessionMiddleware

from .config import Settings, settings as default_settings
from .database import Database
from .errors import (
    DuplicateUsername,
    InvalidCredentials,
    NotFound,
    StorageError,
    Unauthenticated,
    ValidationFailure,
)
from .services.catalog import CatalogQueryService
from .services.identity import CustomerIdentityService
from .services.queue import QueueService
from .services.session import SessionGuard
from .services.watch_history import WatchHistoryService
from .web import render_login_page, render_registration_page

logging.basicConfig(level=default_settings.log_level)
logger = logging.getLogger(__name__)

app: FastAPI

HOME = "/"
REGISTRATION_FIELDS = (
    "username",
    "password",
    "password_confirmation",
    "first_name",
    "last_name",
    "email",
    "credit_card",
)


@dataclass(slots=True)
class Services:
    """Request-independent services shared by every handler."""

    identity: CustomerIdentityService
    queue: QueueService
    watch_history: WatchHistoryService
    catalog: CatalogQueryService

    @classmethod
    def build(cls, app_settings: Settings, database: Database) -> "Services":
        return cls(
            identity=CustomerIdentityService(app_settings, database),
            queue=QueueService(app_settings, database),
            watch_history=WatchHistoryService(app_settings, database),
            catalog=CatalogQueryService(database),
        )


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    app_settings: Settings = fastapi_app.state.settings
    database = Database(app_settings.database_url)
    await database.create_all()

    fastapi_app.state.database = database
    fastapi_app.state.services = Services.build(app_settings, database)

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await database.dispose()


def create_app(app_settings: Settings | None = None) -> FastAPI:
    app_settings = app_settings or default_settings
    fastapi_app = FastAPI(
        title=app_settings.app_name,
        description="Subscription video catalog with queues and watch history",
        version="1.0.0",
        lifespan=lifespan,
    )
    fastapi_app.state.settings = app_settings

    fastapi_app.add_middleware(
        SessionMiddleware,
        secret_key=app_settings.session_secret,
        session_cookie=app_settings.session_cookie,
        max_age=app_settings.session_max_age_seconds,
        https_only=app_settings.session_https_only,
        same_site="lax",
    )

    register_exception_handlers(fastapi_app)
    register_routes(fastapi_app)
    return fastapi_app


def get_services(fastapi_app: FastAPI) -> Services:
    services = getattr(fastapi_app.state, "services", None)
    if not isinstance(services, Services):
        raise RuntimeError("Services not initialised")
    return services


def register_exception_handlers(fastapi_app: FastAPI) -> None:
    async def _storage_failure(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Storage failure while handling %s %s",
            request.method,
            request.url.path,
            exc_info=exc,
        )
        return JSONResponse({"detail": "Internal server error"}, status_code=500)

    fastapi_app.add_exception_handler(StorageError, _storage_failure)
    fastapi_app.add_exception_handler(SQLAlchemyError, _storage_failure)


async def _read_form(request: Request) -> dict[str, str]:
    """Return submitted fields from an urlencoded, multipart or JSON body."""

    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            payload = await request.json()
        except json.JSONDecodeError:
            payload = {}
        if not isinstance(payload, dict):
            return {}
        items = payload.items()
    else:
        form = await request.form()
        items = form.items()
    return {
        str(key): value
        for key, value in items
        if isinstance(value, str)
    }


def _redirect_home() -> RedirectResponse:
    return RedirectResponse(HOME, status_code=303)


def register_routes(fastapi_app: FastAPI) -> None:
    def _settings() -> Settings:
        return fastapi_app.state.settings

    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/")
    async def home(request: Request) -> dict[str, Any]:
        auth = SessionGuard.from_request(request).current()
        return {"pageTitle": "Home", "user": auth.username}

    @fastapi_app.get("/login", response_class=HTMLResponse)
    async def login_page() -> HTMLResponse:
        return HTMLResponse(render_login_page(_settings()))

    @fastapi_app.post("/login")
    async def login(request: Request):
        services = get_services(fastapi_app)
        fields = await _read_form(request)
        username = fields.get("username", "")
        guard = SessionGuard.from_request(request)
        try:
            await services.identity.login(guard, username, fields.get("password", ""))
        except ValidationFailure as exc:
            return HTMLResponse(
                render_login_page(_settings(), message=str(exc), username=username),
                status_code=400,
            )
        except InvalidCredentials as exc:
            return HTMLResponse(
                render_login_page(_settings(), message=exc.detail, username=username),
                status_code=401,
            )
        return _redirect_home()

    @fastapi_app.get("/register", response_class=HTMLResponse)
    async def registration_page() -> HTMLResponse:
        return HTMLResponse(render_registration_page(_settings()))

    @fastapi_app.post("/register")
    async def register(request: Request):
        services = get_services(fastapi_app)
        fields = await _read_form(request)
        submitted = {name: fields.get(name, "") for name in REGISTRATION_FIELDS}
        try:
            await services.identity.register(**submitted)
        except ValidationFailure as exc:
            return HTMLResponse(
                render_registration_page(
                    _settings(),
                    message="Please correct the highlighted fields",
                    values=submitted,
                    errors=exc.errors,
                ),
                status_code=400,
            )
        except DuplicateUsername as exc:
            return HTMLResponse(
                render_registration_page(
                    _settings(), message=exc.detail, values=submitted
                ),
                status_code=409,
            )
        return _redirect_home()

    @fastapi_app.get("/logout")
    async def logout(request: Request) -> RedirectResponse:
        services = get_services(fastapi_app)
        services.identity.logout(SessionGuard.from_request(request))
        return _redirect_home()

    @fastapi_app.get("/me")
    async def me(request: Request) -> JSONResponse:
        services = get_services(fastapi_app)
        auth = SessionGuard.from_request(request).current()
        try:
            profile = await services.identity.get_profile(auth)
        except Unauthenticated as exc:
            return JSONResponse({"detail": exc.detail}, status_code=401)
        return JSONResponse(profile.to_payload())

    @fastapi_app.get("/actor/{actor_id}")
    async def actor(actor_id: str) -> dict[str, Any]:
        services = get_services(fastapi_app)
        try:
            roles = await services.catalog.get_actor_roles(actor_id)
        except NotFound:
            return {
                "pageTitle": "Actor Info",
                "found": False,
                "actor": None,
                "mainRoles": [],
                "recurringRoles": [],
            }
        return {"pageTitle": "Actor Info", "found": True, **roles.to_payload()}

    @fastapi_app.get("/shows/{show_id}")
    async def show(request: Request, show_id: str) -> dict[str, Any]:
        services = get_services(fastapi_app)
        auth = SessionGuard.from_request(request).current()
        payload: dict[str, Any] = {
            "pageTitle": "Show Information",
            "user": auth.username,
            "found": False,
            "show": None,
            "mainCast": [],
            "recurringCast": [],
            "inQueue": False,
        }
        try:
            show_info = await services.catalog.get_show(show_id)
        except NotFound:
            return payload

        main_cast = await services.catalog.get_main_cast(show_id)
        recurring = await services.catalog.get_recurring_cast_with_counts(show_id)
        payload.update(
            found=True,
            show=show_info.to_payload(),
            mainCast=[member.to_payload() for member in main_cast],
            recurringCast=[member.to_payload() for member in recurring],
            inQueue=await services.queue.is_queued(auth, show_id),
        )
        return payload

    @fastapi_app.get("/addtoqueue/{show_id}")
    async def add_to_queue(request: Request, show_id: str) -> RedirectResponse:
        services = get_services(fastapi_app)
        auth = SessionGuard.from_request(request).current()
        try:
            await services.queue.add_to_queue(auth, show_id)
        except Unauthenticated:
            logger.info("Ignoring add-to-queue for %s without a session", show_id)
        return _redirect_home()

    @fastapi_app.get("/show_episodes/{show_id}")
    async def show_episodes(show_id: str) -> dict[str, Any]:
        services = get_services(fastapi_app)
        try:
            show_info = await services.catalog.get_show(show_id)
        except NotFound:
            return {"pageTitle": "Show Episodes", "found": False, "show": None, "episodes": []}
        episodes = await services.catalog.get_episodes(show_id)
        return {
            "pageTitle": "Show Episodes",
            "found": True,
            "show": show_info.to_payload(),
            "episodes": [episode.to_payload() for episode in episodes],
        }

    @fastapi_app.get("/episodeinfo/{show_id}&{episode_id}")
    async def episode_info(
        request: Request, show_id: str, episode_id: str
    ) -> dict[str, Any]:
        services = get_services(fastapi_app)
        auth = SessionGuard.from_request(request).current()
        payload: dict[str, Any] = {
            "pageTitle": "Episode Info",
            "user": auth.username,
            "found": False,
            "show": None,
            "episode": None,
            "mainCast": [],
            "recurringCast": [],
        }
        try:
            show_info = await services.catalog.get_show(show_id)
            episode = await services.catalog.get_episode(show_id, episode_id)
        except NotFound:
            return payload

        main_cast = await services.catalog.get_main_cast(show_id)
        episode_cast = await services.catalog.get_episode_cast(show_id, episode_id)
        payload.update(
            found=True,
            show=show_info.to_payload(),
            episode=episode.to_payload(),
            mainCast=[member.to_payload() for member in main_cast],
            recurringCast=[member.to_payload() for member in episode_cast],
        )
        return payload

    @fastapi_app.api_route("/search", methods=["GET", "POST"])
    async def search(request: Request) -> dict[str, Any]:
        services = get_services(fastapi_app)
        if request.method == "POST":
            fields = await _read_form(request)
        else:
            fields = dict(request.query_params)
        term = fields.get("search", "")
        results = await services.catalog.search(term)
        return {"pageTitle": "Search", "search": term.strip(), **results.to_payload()}

    @fastapi_app.api_route("/queue", methods=["GET", "POST"])
    async def queue(request: Request) -> dict[str, Any]:
        services = get_services(fastapi_app)
        auth = SessionGuard.from_request(request).current()
        items = await services.queue.list_queue(auth)
        return {"pageTitle": "Queue", "queue": [item.to_payload() for item in items]}

    @fastapi_app.get("/watched/{show_id}")
    async def watched(request: Request, show_id: str) -> dict[str, Any]:
        services = get_services(fastapi_app)
        auth = SessionGuard.from_request(request).current()
        episodes = await services.watch_history.list_watched(auth, show_id)
        return {
            "pageTitle": "Watched Info",
            "showId": show_id,
            "watched": [episode.to_payload() for episode in episodes],
        }

    @fastapi_app.get("/watch_episode/{show_id}&{episode_id}")
    async def watch_episode(
        request: Request, show_id: str, episode_id: str
    ) -> dict[str, Any]:
        services = get_services(fastapi_app)
        auth = SessionGuard.from_request(request).current()
        payload: dict[str, Any] = {
            "pageTitle": "Watching",
            "found": False,
            "recorded": False,
            "show": None,
            "episode": None,
        }
        try:
            show_info = await services.catalog.get_show(show_id)
            episode = await services.catalog.get_episode(show_id, episode_id)
        except NotFound:
            return payload

        payload.update(
            found=True, show=show_info.to_payload(), episode=episode.to_payload()
        )
        if auth.is_authenticated:
            payload["recorded"] = await services.watch_history.record_watch(
                auth, show_id, episode_id
            )
        return payload


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=default_settings.server_host,
        port=default_settings.server_port,
        reload=default_settings.environment == "development",
    )
