"""FastAPI application exposing the contact and menu endpoints."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import asynccontextmanager
from dataclasses import asdict
from pathlib import Path
from typing import Any, AsyncIterator, List

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from rolodex.config import AppConfig
from rolodex.core.errors import UpsertError
from rolodex.core.upsert import UpsertResult
from rolodex.service import ContactService
from rolodex.store.storage import SQLiteContactStore

LOGGER = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    yield
    service = getattr(app.state, "service", None)
    if service is not None:
        service.store.close()
        app.state.service = None


app = FastAPI(title="Rolodex", version=VERSION, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


class ContactCreatePayload(BaseModel):
    id: str | None = None
    name: str = Field(min_length=1)
    phone: str = Field(min_length=1)


class ContactPayload(BaseModel):
    id: str
    name: str = Field(min_length=1)
    phone: str = Field(min_length=1)


class ContactPatchPayload(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    phone: str | None = Field(default=None, min_length=1)


class SearchPayload(BaseModel):
    query: str = ""
    fields: List[str] | None = None
    threshold: float | None = None
    case_sensitive: bool = False
    all_matches: bool = False


class MealPayload(BaseModel):
    id: str | None = None
    title: str
    description: str
    type: str
    price: float
    calories: float
    image_url: str
    size: str


class MenuPayload(BaseModel):
    id: str | None = None
    title: str
    restaurant_name: str
    meals: List[MealPayload] = Field(default_factory=list)


def _ensure_db_parent(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)


def build_service(config: AppConfig) -> ContactService:
    resolved_db = config.resolve_db_path(Path.cwd())
    _ensure_db_parent(resolved_db)
    return ContactService(SQLiteContactStore(resolved_db), config)


def get_service(request: Request) -> ContactService:
    service = getattr(request.app.state, "service", None)
    if service is None:
        service = build_service(AppConfig())
        request.app.state.service = service
    return service


def _http_error(error: UpsertError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.message)


def _unwrap(result: UpsertResult) -> dict[str, Any]:
    if result.error is not None:
        raise _http_error(result.error)
    return asdict(result.record)


def _checked_id(service: ContactService, contact_id: str) -> str:
    error = service.check_identifier(contact_id)
    if error is not None:
        raise _http_error(error)
    return contact_id


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": VERSION}


@app.post("/contacts")
async def create_contact(
    payload: ContactCreatePayload, service: ContactService = Depends(get_service)
) -> dict[str, Any]:
    """Create a contact; the server generates its id."""
    return _unwrap(service.create(payload.model_dump(exclude_none=True)))


@app.put("/contacts")
@app.put("/contacts/upsert")
async def upsert_contact(
    payload: ContactPayload, service: ContactService = Depends(get_service)
) -> dict[str, Any]:
    """Create or fully replace the contact with the supplied id."""
    return _unwrap(service.replace(payload.model_dump()))


@app.patch("/contacts/{contact_id}")
async def update_contact(
    contact_id: str,
    payload: ContactPatchPayload,
    service: ContactService = Depends(get_service),
) -> dict[str, Any]:
    """Update only the fields present in the body."""
    return _unwrap(service.merge(contact_id, payload.model_dump(exclude_none=True)))


@app.get("/contacts")
async def list_contacts(
    text: str | None = None,
    name: str | None = None,
    service: ContactService = Depends(get_service),
) -> List[dict[str, Any]]:
    """List all contacts, or those matching ``text`` (any field) or ``name``."""
    if text:
        matches = service.search(text)
    elif name:
        matches = service.search(name, service.config.search_config(fields=("name",)))
    else:
        return [asdict(record) for record in service.list_contacts()]
    return [asdict(match.record) for match in matches]


@app.post("/contacts/search")
async def search_contacts(
    payload: SearchPayload, service: ContactService = Depends(get_service)
) -> dict[str, Any]:
    try:
        config = service.config.search_config(
            fields=payload.fields,
            threshold=payload.threshold,
            case_sensitive=payload.case_sensitive,
            all_matches=payload.all_matches,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    matches = service.search(payload.query, config)
    return {"results": [asdict(match) for match in matches]}


@app.get("/contacts/{contact_id}")
async def get_contact(
    contact_id: str, service: ContactService = Depends(get_service)
) -> dict[str, Any] | None:
    """Return one contact or null."""
    record = service.get(_checked_id(service, contact_id))
    return asdict(record) if record is not None else None


@app.delete("/contacts/{contact_id}")
async def delete_contact(
    contact_id: str, service: ContactService = Depends(get_service)
) -> dict[str, Any]:
    removed = service.delete(_checked_id(service, contact_id))
    if removed is None:
        raise HTTPException(status_code=404, detail=f"Contact with id {contact_id} not found")
    return asdict(removed)


@app.put("/menus")
async def create_menu(
    payload: MenuPayload, service: ContactService = Depends(get_service)
) -> List[dict[str, Any]]:
    """Store a menu and return every menu."""
    try:
        menus = service.add_menu(payload.model_dump(exclude_none=True))
    except sqlite3.IntegrityError as exc:
        LOGGER.error("Unable to store menu: %s", exc)
        detail = f"Menu {payload.id} already exists" if payload.id else "Menu id already exists"
        raise HTTPException(status_code=409, detail=detail) from exc
    return [asdict(menu) for menu in menus]


@app.get("/menus")
async def list_menus(service: ContactService = Depends(get_service)) -> List[dict[str, Any]]:
    return [asdict(menu) for menu in service.list_menus()]
