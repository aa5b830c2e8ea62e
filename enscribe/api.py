import asyncio
import json
import logging

from aiohttp import web

from .backup import export_json, import_document
from .db import EnscribeStore
from .errors import CodecError, StoreIOError
from .models import Entry, EntryKind, new_entry
from .query import SortOrder, categories_of, filter_and_sort, preview_text
from .settings import Settings
from .utils import backup_file_name, env_flag

logger = logging.getLogger("Enscribe")

STORE_KEY = web.AppKey("enscribe_store", EnscribeStore)

routes = web.RouteTableDef()


def _json_response(obj, status=200):
    return web.Response(
        status=status,
        text=json.dumps(obj, ensure_ascii=False),
        content_type="application/json",
    )


def _bad_request(msg):
    return _json_response({"error": msg}, status=400)


def _not_found(msg="entry not found"):
    return _json_response({"error": msg}, status=404)


async def _run(func, *args, **kwargs):
    # sqlite calls block; keep them off the event loop.
    return await asyncio.to_thread(func, *args, **kwargs)


def _kind_from(request):
    try:
        return EntryKind.parse(request.match_info["kind"])
    except ValueError:
        raise web.HTTPNotFound(
            text=json.dumps({"error": f"unknown kind: {request.match_info['kind']}"}),
            content_type="application/json",
        )


def _entry_id_from(request):
    try:
        return int(request.match_info["entry_id"])
    except ValueError:
        raise web.HTTPBadRequest(
            text=json.dumps({"error": "entry id must be an integer"}),
            content_type="application/json",
        )


def _query_params(request):
    q = request.query.get("q", "")
    categories = [c for c in request.query.get("categories", "").split(",") if c.strip()]
    sort = SortOrder.parse(request.query.get("sort", ""))
    return q, categories, sort


def _card(entry):
    item = entry.to_dict()
    item["kind"] = entry.kind.value
    item["preview"] = preview_text(entry)
    return item


async def _json_payload(request):
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return payload if isinstance(payload, dict) else None


def _entry_from_payload(kind, payload, existing=None):
    """Merge editor fields from ``payload`` into ``existing`` (or a fresh entry)."""
    base = existing or new_entry(kind, title="")
    data = base.to_dict()
    data.update({k: v for k, v in payload.items() if k not in ("id", "createdAt", "modifiedAt")})
    data["id"] = base.id or 1
    entry = Entry.from_dict(kind, data)
    entry.id = base.id
    return entry


@routes.get("/enscribe/health")
async def health(request):
    store = request.app[STORE_KEY]
    return _json_response({"ok": True, "db_path": store.db_path})


@routes.get("/enscribe/categories")
async def list_categories(request):
    store = request.app[STORE_KEY]
    kind = request.query.get("kind") or None
    try:
        categories = await _run(store.categories, kind)
    except ValueError as exc:
        return _bad_request(str(exc))
    return _json_response({"categories": categories})


@routes.get("/enscribe/settings")
async def get_settings(request):
    store = request.app[STORE_KEY]
    settings = await _run(store.load_settings)
    return _json_response(settings.to_dict())


@routes.put("/enscribe/settings")
async def put_settings(request):
    store = request.app[STORE_KEY]
    payload = await _json_payload(request)
    if payload is None:
        return _bad_request("settings body must be a JSON object")
    current = await _run(store.load_settings)
    try:
        settings = Settings.from_dict(payload, base=current).validate()
    except ValueError as exc:
        return _bad_request(str(exc))
    await _run(store.save_settings, settings)
    return _json_response(settings.to_dict())


@routes.get("/enscribe/backup")
async def download_backup(request):
    store = request.app[STORE_KEY]
    text = await _run(export_json, store, 2)
    return web.Response(
        text=text,
        content_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{backup_file_name()}"'},
    )


@routes.post("/enscribe/restore")
async def restore_backup(request):
    store = request.app[STORE_KEY]
    body = await request.read()
    try:
        summary = await _run(import_document, store, body)
    except CodecError as exc:
        return _bad_request(f"invalid backup: {exc}")
    return _json_response({"restored": summary})


@routes.get("/enscribe/entries")
async def list_all_entries(request):
    store = request.app[STORE_KEY]
    try:
        q, categories, sort = _query_params(request)
    except ValueError as exc:
        return _bad_request(str(exc))
    everything = await _run(store.get_everything)
    entries = [e for kind in EntryKind for e in everything[kind]]
    items = filter_and_sort(entries, q, categories, sort, include_body=True)
    return _json_response(
        {
            "items": [_card(e) for e in items],
            "total": len(items),
            "sort": sort.value,
            "categories": categories_of(entries),
        }
    )


@routes.get("/enscribe/{kind}")
async def list_entries(request):
    store = request.app[STORE_KEY]
    kind = _kind_from(request)
    try:
        q, categories, sort = _query_params(request)
    except ValueError as exc:
        return _bad_request(str(exc))
    if kind is EntryKind.TASK and env_flag(request.query.get("pending")):
        entries = await _run(store.get_pending_tasks)
    else:
        entries = await _run(store.get_all, kind)
    items = filter_and_sort(entries, q, categories, sort)
    return _json_response(
        {
            "items": [_card(e) for e in items],
            "total": len(items),
            "sort": sort.value,
            "categories": categories_of(entries),
        }
    )


@routes.post("/enscribe/{kind}")
async def create_entry(request):
    store = request.app[STORE_KEY]
    kind = _kind_from(request)
    payload = await _json_payload(request)
    if payload is None:
        return _bad_request("entry body must be a JSON object")
    try:
        entry = _entry_from_payload(kind, payload)
    except ValueError as exc:
        return _bad_request(str(exc))
    created = await _run(store.create, entry)
    return _json_response(_card(created), status=201)


@routes.get("/enscribe/{kind}/{entry_id}")
async def get_entry(request):
    store = request.app[STORE_KEY]
    kind = _kind_from(request)
    entry = await _run(store.get_by_id, kind, _entry_id_from(request))
    if entry is None:
        return _not_found()
    return _json_response(_card(entry))


@routes.put("/enscribe/{kind}/{entry_id}")
async def update_entry(request):
    store = request.app[STORE_KEY]
    kind = _kind_from(request)
    entry_id = _entry_id_from(request)
    payload = await _json_payload(request)
    if payload is None:
        return _bad_request("entry body must be a JSON object")
    existing = await _run(store.get_by_id, kind, entry_id)
    if existing is None:
        return _not_found()
    try:
        entry = _entry_from_payload(kind, payload, existing=existing)
    except ValueError as exc:
        return _bad_request(str(exc))
    updated = await _run(store.update, entry)
    if updated is None:
        return _not_found()
    return _json_response(_card(updated))


@routes.delete("/enscribe/{kind}/{entry_id}")
async def delete_entry(request):
    store = request.app[STORE_KEY]
    kind = _kind_from(request)
    deleted = await _run(store.delete, kind, _entry_id_from(request))
    if not deleted:
        return _not_found()
    return _json_response({"deleted": True})


@web.middleware
async def error_middleware(request, handler):
    try:
        return await handler(request)
    except StoreIOError as exc:
        logger.error("Store failure on %s %s: %s", request.method, request.path, exc)
        return _json_response({"error": f"storage error: {exc}"}, status=500)


def create_app(store=None):
    app = web.Application(middlewares=[error_middleware])
    app[STORE_KEY] = store or EnscribeStore.get()
    app.add_routes(routes)
    return app


__all__ = ["STORE_KEY", "create_app", "routes"]
