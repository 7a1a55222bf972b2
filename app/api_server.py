"""FastAPI entrypoint exposing discovery-mixed search, settings and interaction tracking."""

from __future__ import annotations

from contextlib import asynccontextmanager
import functools
from pathlib import Path
from typing import AsyncIterator

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

import sys

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from discovery_assistant.service import DiscoveryAssistantService


class SearchRequest(BaseModel):
    query: str = ""
    image_keywords: list[str] = Field(default_factory=list, max_length=20)
    top_k: int | None = Field(default=None, ge=1, le=50)


class DiscoverySettingsRequest(BaseModel):
    discovery_percentage: int


class InteractionRequest(BaseModel):
    session_id: str
    product_id: str
    kind: str
    time_spent: float | None = Field(default=None, ge=0)


@functools.lru_cache(maxsize=1)
def get_service() -> DiscoveryAssistantService:
    load_dotenv(ROOT_DIR / ".env")
    return DiscoveryAssistantService(root_dir=ROOT_DIR)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    yield
    # Only close a service this process actually built.
    if get_service.cache_info().currsize:
        get_service().close()
        get_service.cache_clear()


app = FastAPI(title="Discovery Shopping Assistant", version="1.0.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://127.0.0.1:5173",
        "http://localhost:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/health")
def health(service: DiscoveryAssistantService = Depends(get_service)) -> dict:
    return {
        "status": "ok",
        "app": "discovery-shopping-assistant",
        "stats": service.stats(),
    }


@app.post("/api/search")
def search(request: SearchRequest, service: DiscoveryAssistantService = Depends(get_service)) -> dict:
    try:
        return service.search(
            request.query,
            image_keywords=request.image_keywords,
            top_k=request.top_k,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc


@app.get("/api/sessions/{session_id}")
def session(session_id: str, service: DiscoveryAssistantService = Depends(get_service)) -> dict:
    try:
        return service.get_session(session_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.get("/api/settings/discovery")
def discovery_settings(service: DiscoveryAssistantService = Depends(get_service)) -> dict:
    return service.get_discovery_settings()


@app.put("/api/settings/discovery")
def update_discovery_settings(
    request: DiscoverySettingsRequest,
    service: DiscoveryAssistantService = Depends(get_service),
) -> dict:
    try:
        return service.update_discovery_settings(request.discovery_percentage)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.post("/api/interactions")
def interactions(request: InteractionRequest, service: DiscoveryAssistantService = Depends(get_service)) -> dict:
    try:
        return service.record_interaction(
            session_id=request.session_id,
            product_id=request.product_id,
            kind=request.kind,
            time_spent=request.time_spent,
        )
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.get("/api/discovery/stats")
def stats(service: DiscoveryAssistantService = Depends(get_service)) -> dict:
    return service.discovery_stats()


@app.post("/api/learning-data/reset")
def reset_learning_data(service: DiscoveryAssistantService = Depends(get_service)) -> dict:
    return service.reset_learning_data()
