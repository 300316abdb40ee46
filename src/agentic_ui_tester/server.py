"""MCP server entry point: thin proxy to the persistent daemon."""
import asyncio
import json
import logging
import httpx
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent

from . import config

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
log = logging.getLogger(__name__)

DAEMON_URL = f"http://{config.DAEMON_HOST}:{config.DAEMON_PORT}"

app = Server("agentic-ui-tester")

# ─── Tool definitions ───────────────────────────────────────────

_ELEMENT_ARGS = {
    "description": {"type": "string", "description": "Natural-language description of the UI element, e.g. 'the Save button in the toolbar'"},
    "test_data": {"type": "string", "description": "Test data the element shows or depends on (e.g. a row's customer name). Optional."},
}

TOOLS = [
    Tool(
        name="locate_element",
        description="Find a known UI element on the current screen. Returns the element's centre and bounding box in logical screen coordinates, or an error with a status telling why it was not found.",
        inputSchema={
            "type": "object",
            "properties": _ELEMENT_ARGS,
            "required": ["description"],
        },
    ),
    Tool(
        name="click_element",
        description="Locate a known UI element on the current screen and click its centre.",
        inputSchema={
            "type": "object",
            "properties": {
                **_ELEMENT_ARGS,
                "button": {"type": "integer", "description": "1=left, 2=middle, 3=right. Default: 1", "default": 1},
            },
            "required": ["description"],
        },
    ),
    Tool(
        name="list_elements",
        description="List the reference UI elements known to the element store.",
        inputSchema={"type": "object", "properties": {}},
    ),
    Tool(
        name="health_check",
        description="Check daemon and vision backend health.",
        inputSchema={"type": "object", "properties": {}},
    ),
]


# ─── Route map ──────────────────────────────────────────────────

ROUTE_MAP = {
    "locate_element": ("POST", "/locate_element"),
    "click_element": ("POST", "/click_element"),
    "list_elements": ("GET", "/elements"),
    "health_check": ("GET", "/health"),
}


# ─── Proxy handler ──────────────────────────────────────────────

@app.list_tools()
async def list_tools():
    return TOOLS


@app.call_tool()
async def call_tool(name: str, arguments: dict):
    if name not in ROUTE_MAP:
        return [TextContent(type="text", text=json.dumps({"error": f"Unknown tool: {name}"}))]

    method, path = ROUTE_MAP[name]
    try:
        async with httpx.AsyncClient(timeout=300.0) as client:
            if method == "GET":
                resp = await client.get(f"{DAEMON_URL}{path}")
            else:
                resp = await client.post(f"{DAEMON_URL}{path}", json=arguments)

            data = resp.json()
            return [TextContent(type="text", text=json.dumps(data))]
    except httpx.ConnectError:
        return [TextContent(type="text", text=json.dumps({
            "error": "UI tester daemon is not running. Start it with: ut-daemon",
            "hint": "Run: ut-daemon  (or: python -m agentic_ui_tester.daemon)"
        }))]
    except Exception as e:
        return [TextContent(type="text", text=json.dumps({"error": str(e)}))]


def main():
    log.info("Starting agentic-ui-tester MCP server (proxy mode)")
    asyncio.run(_run())


async def _run():
    async with stdio_server() as (read_stream, write_stream):
        await app.run(read_stream, write_stream, app.create_initialization_options())


if __name__ == "__main__":
    main()
