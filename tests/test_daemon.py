"""HTTP surface of the daemon, driven through aiohttp's test client."""
import base64

import pytest

from conftest import png_bytes


@pytest.mark.asyncio
async def test_store_list_and_locate_errors(isolated_data):
    from aiohttp.test_utils import TestClient, TestServer
    from agentic_ui_tester.daemon import create_app

    async with TestClient(TestServer(create_app())) as client:
        resp = await client.post("/locate_element", json={"description": "Save button"})
        assert resp.status == 404
        assert (await resp.json())["status"] == "NO_ELEMENTS_FOUND_IN_DB"

        resp = await client.post("/elements", json={
            "name": "Save button",
            "description": "Blue button with a floppy disk icon",
            "screenshot_png_base64": base64.b64encode(png_bytes()).decode(),
        })
        assert resp.status == 200
        stored = await resp.json()
        assert stored["has_screenshot"] is True

        resp = await client.get("/elements")
        listing = await resp.json()
        assert listing["count"] == 1

        resp = await client.post("/locate_element", json={"description": "Print preview dialog"})
        assert resp.status == 404
        assert (await resp.json())["status"] == "SIMILAR_ELEMENTS_IN_DB_BUT_SCORE_TOO_LOW"

        resp = await client.post("/locate_element", json={"description": ""})
        assert resp.status == 400

        resp = await client.post("/elements/remove", json={"id": stored["id"]})
        assert (await resp.json())["removed"] is True


@pytest.mark.asyncio
async def test_locate_returns_location(isolated_data, monkeypatch):
    from agentic_ui_tester import tools
    from aiohttp.test_utils import TestClient, TestServer
    from agentic_ui_tester.daemon import create_app
    from agentic_ui_tester.locator.types import BoundingBox

    async def fake_locate(description, test_data=None):
        return tools.ElementLocation(15, 25, BoundingBox(10, 20, 10, 10), "el-1", description, "fusion:all_signals_agree")

    monkeypatch.setattr(tools, "locate_element_on_screen", fake_locate)

    async with TestClient(TestServer(create_app())) as client:
        resp = await client.post("/locate_element", json={"description": "Save button"})
        assert resp.status == 200
        data = await resp.json()
        assert data["x"] == 15 and data["y"] == 25
        assert data["bounding_box"] == {"x": 10, "y": 20, "width": 10, "height": 10}
        assert data["element_name"] == "Save button"
