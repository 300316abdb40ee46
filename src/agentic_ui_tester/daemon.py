"""Persistent daemon for the UI test agent: element location and clicks over HTTP.

Runs as a background HTTP server so the MCP server (spawned per call) can use
the locator without losing the async event loop and the warm model clients.
"""
import base64
import logging
import sys
import time
from aiohttp import web

from . import config, debug, tools
from .elements import store
from .errors import ElementLocationError, InvalidElementError
from .locator.types import UiElement

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
log = logging.getLogger(__name__)


async def _parse_body(request: web.Request) -> dict:
    """Parse JSON body, normalizing keys that have trailing colons (mcporter :=  syntax artifact)."""
    if not request.can_read_body:
        return {}
    raw = await request.json()
    return {k.rstrip(":"): v for k, v in raw.items()} if isinstance(raw, dict) else raw


def _element_summary(element: UiElement) -> dict:
    return {
        "id": element.id,
        "name": element.name,
        "description": element.description,
        "location_details": element.location_details,
        "zoom_in_required": element.zoom_in_required,
        "data_dependent_attributes": list(element.data_dependent_attributes),
        "has_screenshot": element.screenshot is not None,
    }


# ─── Element location handlers ───────────────────────────────────

async def handle_locate_element(request: web.Request) -> web.Response:
    args = await _parse_body(request)
    try:
        location = await tools.locate_element_on_screen(args.get("description", ""), args.get("test_data"))
    except InvalidElementError as e:
        return web.json_response({"error": str(e)}, status=400)
    except ElementLocationError as e:
        return web.json_response(e.to_dict(), status=404)
    return web.json_response(location.to_dict())


async def handle_click_element(request: web.Request) -> web.Response:
    args = await _parse_body(request)
    try:
        location = await tools.click_element(
            args.get("description", ""), args.get("test_data"), int(args.get("button", 1)))
    except InvalidElementError as e:
        return web.json_response({"error": str(e)}, status=400)
    except ElementLocationError as e:
        return web.json_response(e.to_dict(), status=404)
    return web.json_response({"clicked": True, **location.to_dict()})


# ─── Element store handlers ──────────────────────────────────────

async def handle_list_elements(request: web.Request) -> web.Response:
    elements = await store.list_elements()
    return web.json_response({"elements": [_element_summary(e) for e in elements], "count": len(elements)})


async def handle_store_element(request: web.Request) -> web.Response:
    args = await _parse_body(request)
    if not args.get("name") or not str(args.get("description", "")).strip():
        return web.json_response({"error": "name and description are required"}, status=400)
    screenshot = base64.b64decode(args["screenshot_png_base64"]) if args.get("screenshot_png_base64") else None
    element = await store.store_element(UiElement(
        id=args.get("id", ""),
        name=args["name"],
        description=args["description"],
        location_details=args.get("location_details", ""),
        page_summary=args.get("page_summary", ""),
        screenshot=screenshot,
        zoom_in_required=bool(args.get("zoom_in_required", False)),
        data_dependent_attributes=tuple(args.get("data_dependent_attributes", [])),
    ))
    return web.json_response(_element_summary(element))


async def handle_remove_element(request: web.Request) -> web.Response:
    args = await _parse_body(request)
    removed = await store.remove_element(args.get("id", ""))
    if not removed:
        return web.json_response({"error": f"Element {args.get('id')} not found"}, status=404)
    return web.json_response({"id": args["id"], "removed": True})


# ─── Health ──────────────────────────────────────────────────────

async def handle_health(request: web.Request) -> web.Response:
    from .vision import check_health
    vision_health = await check_health()
    elements = await store.list_elements()
    return web.json_response({
        "server": "ok", "daemon": True,
        "vision": vision_health,
        "vision_backend": config.VISION_BACKEND,
        "elements": len(elements),
        "data_dir": str(config.DATA_DIR),
        "display": config.DISPLAY,
    })


# ─── App setup ──────────────────────────────────────────────────

@web.middleware
async def debug_middleware(request: web.Request, handler):
    start = time.time()
    try:
        response = await handler(request)
        debug.log_http(request.method, request.path, response.status, (time.time() - start) * 1000)
        return response
    except Exception:
        debug.log_http(request.method, request.path, 500, (time.time() - start) * 1000)
        raise


def create_app() -> web.Application:
    app = web.Application(middlewares=[debug_middleware])
    # Locator
    app.router.add_post("/locate_element", handle_locate_element)
    app.router.add_post("/click_element", handle_click_element)
    # Element store
    app.router.add_get("/elements", handle_list_elements)
    app.router.add_post("/elements", handle_store_element)
    app.router.add_post("/elements/remove", handle_remove_element)
    # Health
    app.router.add_get("/health", handle_health)
    return app


def main():
    enable_debug = "--debug" in sys.argv or config.DEBUG_MODE
    config.ensure_data_dir()
    debug.init(enabled=enable_debug)
    debug.log("DAEMON", f"Starting UI tester daemon on {config.DAEMON_HOST}:{config.DAEMON_PORT}")
    debug.log("DAEMON", f"Display: {config.DISPLAY}, Vision: {config.VISION_BACKEND}")
    debug.log("DAEMON", f"Data dir: {config.DATA_DIR}")
    log.info(f"Starting UI tester daemon on {config.DAEMON_HOST}:{config.DAEMON_PORT}")
    app = create_app()

    async def on_cleanup(app):
        from .display.manager import cleanup_all
        cleanup_all()
        debug.close()

    app.on_cleanup.append(on_cleanup)

    web.run_app(app, host=config.DAEMON_HOST, port=config.DAEMON_PORT, print=lambda msg: log.info(msg))


if __name__ == "__main__":
    main()
