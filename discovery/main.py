"""Entry point for the FastAPI service exposing the client state."""

from __future__ import annotations

import json
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .client import DiscoveryClient
from .config import settings
from .database import Database
from .errors import ReviewUploadError
from .events import EventBus
from .models import ReviewDraft
from .navigation import Home, Tab, parse_route
from .services.gateway import CatalogGateway
from .services.reviews import ReviewService
from .services.tmdb import TMDBClient

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.tmdb_api_url),
            timeout=httpx.Timeout(settings.request_timeout_seconds),
        )
    )
    database = Database(settings.database_url)
    await database.create_all()

    events = EventBus()
    gateway = CatalogGateway(settings, events=events)
    tmdb = TMDBClient(settings, http_client, gateway)
    reviews = ReviewService(settings, database)
    client = DiscoveryClient(settings, tmdb, reviews, events=events)

    configuration_error = client.configuration_error
    if configuration_error:
        logger.warning(configuration_error)

    fastapi_app.state.discovery_client = client
    fastapi_app.state.database = database

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        client.close()
        await database.dispose()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Browse, search and review movies from TMDB",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_discovery_client(app: FastAPI) -> DiscoveryClient:
    client = getattr(app.state, "discovery_client", None)
    if not isinstance(client, DiscoveryClient):
        raise RuntimeError("Discovery client not initialised")
    return client


async def _read_payload(request: Request) -> dict[str, Any]:
    try:
        payload = await request.json()
    except json.JSONDecodeError:
        payload = {}
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid payload")
    return payload


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.get("/health")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/state")
    async def state() -> dict[str, object]:
        return get_discovery_client(fastapi_app).to_payload()

    @fastapi_app.post("/navigation/push")
    async def navigation_push(request: Request) -> dict[str, object]:
        client = get_discovery_client(fastapi_app)
        payload = await _read_payload(request)
        try:
            route = parse_route(payload)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        if isinstance(route, Home):
            raise HTTPException(status_code=400, detail="Home is the root screen")
        client.navigator.push(route)
        return client.navigator.state.to_payload()

    @fastapi_app.post("/navigation/pop")
    async def navigation_pop() -> dict[str, object]:
        client = get_discovery_client(fastapi_app)
        client.navigator.pop()
        return client.navigator.state.to_payload()

    @fastapi_app.post("/navigation/tab/{tab}")
    async def navigation_tab(tab: str) -> dict[str, object]:
        client = get_discovery_client(fastapi_app)
        try:
            resolved = Tab(tab)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=f"Unknown tab {tab!r}") from exc
        client.navigator.switch_tab(resolved)
        return client.navigator.state.to_payload()

    @fastapi_app.post("/navigation/back")
    async def navigation_back() -> dict[str, object]:
        client = get_discovery_client(fastapi_app)
        handled = client.navigator.handle_back_signal()
        return {"handled": handled, "navigation": client.navigator.state.to_payload()}

    @fastapi_app.get("/popular")
    async def popular() -> dict[str, object]:
        return get_discovery_client(fastapi_app).popular.snapshot().to_payload()

    @fastapi_app.post("/popular/{action}")
    async def popular_action(action: str) -> dict[str, object]:
        controller = get_discovery_client(fastapi_app).popular
        if action == "reset":
            await controller.reset_and_load()
        elif action == "refresh":
            await controller.refresh()
        elif action == "next":
            await controller.load_next()
        else:
            raise HTTPException(status_code=404, detail=f"Unknown action {action!r}")
        return controller.snapshot().to_payload()

    @fastapi_app.get("/search")
    async def search_state() -> dict[str, object]:
        return get_discovery_client(fastapi_app).search.to_payload()

    @fastapi_app.post("/search")
    async def search(request: Request) -> dict[str, object]:
        search_controller = get_discovery_client(fastapi_app).search
        payload = await _read_payload(request)
        query = payload.get("query", "")
        if not isinstance(query, str):
            raise HTTPException(status_code=400, detail="query must be a string")
        await search_controller.set_query(query)
        return search_controller.to_payload()

    @fastapi_app.post("/search/{action}")
    async def search_action(action: str) -> dict[str, object]:
        search_controller = get_discovery_client(fastapi_app).search
        if action == "refresh":
            await search_controller.refresh()
        elif action == "next":
            await search_controller.load_next()
        else:
            raise HTTPException(status_code=404, detail=f"Unknown action {action!r}")
        return search_controller.to_payload()

    @fastapi_app.post("/movies/{movie_id}/open")
    async def open_movie(movie_id: int) -> dict[str, object]:
        controller = await get_discovery_client(fastapi_app).open_movie(movie_id)
        return controller.to_payload()

    @fastapi_app.get("/movies/{movie_id}")
    async def movie_details(movie_id: int) -> dict[str, object]:
        controller = get_discovery_client(fastapi_app).details_for(movie_id)
        if controller.details is None and not controller.loading:
            await controller.load()
        return controller.to_payload()

    @fastapi_app.post("/movies/{movie_id}/reviews/next")
    async def movie_reviews_next(movie_id: int) -> dict[str, object]:
        controller = get_discovery_client(fastapi_app).details_for(movie_id)
        await controller.load_more_reviews()
        return controller.to_payload()

    @fastapi_app.post("/movies/{movie_id}/review")
    async def open_review_form(movie_id: int, request: Request) -> dict[str, object]:
        client = get_discovery_client(fastapi_app)
        payload = await _read_payload(request)
        movie_title = str(payload.get("movieTitle") or "").strip()
        if not movie_title:
            details = client.details_for(movie_id).details
            movie_title = details.title if details is not None else ""
        if not movie_title:
            raise HTTPException(status_code=400, detail="movieTitle is required")
        client.open_post_review(movie_id, movie_title)
        return client.navigator.state.to_payload()

    @fastapi_app.post("/movies/{movie_id}/user-reviews")
    async def submit_user_review(movie_id: int, request: Request) -> JSONResponse:
        client = get_discovery_client(fastapi_app)
        payload = await _read_payload(request)
        movie_title = str(payload.pop("movieTitle", "") or "").strip()
        if not movie_title:
            raise HTTPException(status_code=400, detail="movieTitle is required")
        try:
            draft = ReviewDraft.model_validate(payload)
        except ValidationError as exc:
            raise HTTPException(
                status_code=400, detail=exc.errors(include_url=False, include_context=False)
            ) from exc

        try:
            review = await client.submit_review(movie_id, movie_title, draft)
        except ReviewUploadError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc

        return JSONResponse(
            {"message": review.receipt(), "review": review.to_payload()},
            status_code=201,
        )

    @fastapi_app.get("/movies/{movie_id}/user-reviews")
    async def list_user_reviews(movie_id: int) -> dict[str, object]:
        reviews = await get_discovery_client(fastapi_app).list_user_reviews(movie_id)
        return {"reviews": [review.to_payload() for review in reviews]}

    @fastapi_app.post("/notices/network-help/dismiss")
    async def dismiss_network_help() -> dict[str, object]:
        client = get_discovery_client(fastapi_app)
        client.dismiss_network_help()
        return client.to_payload()["notices"]  # type: ignore[return-value]


app = create_app()
