"""Model answers are validated against the declared result types."""
import pytest


def test_bounding_boxes_from_fenced_json():
    from agentic_ui_tester.vision.schemas import BoundingBoxesResult, RawBox

    text = 'Here you go:\n```json\n{"boundingBoxes": [{"x1": 10, "y1": 20, "x2": 30, "y2": 40}]}\n```'
    result = BoundingBoxesResult.parse(text)
    assert result.boxes == (RawBox(10, 20, 30, 40),)


def test_bounding_boxes_accepts_lists_and_empty():
    from agentic_ui_tester.vision.schemas import BoundingBoxesResult, RawBox

    assert BoundingBoxesResult.parse('{"boundingBoxes": [[1, 2, 3, 4]]}').boxes == (RawBox(1, 2, 3, 4),)
    assert BoundingBoxesResult.parse('{"boundingBoxes": []}').boxes == ()


@pytest.mark.parametrize("text", [
    "",
    "no json here",
    '{"boxes": []}',
    '{"boundingBoxes": [{"x1": 1, "y1": 2}]}',
    '{"boundingBoxes": [{"x1": "a", "y1": 2, "x2": 3, "y2": 4}]}',
])
def test_bounding_boxes_rejects_malformed(text):
    from agentic_ui_tester.errors import ModelResponseError
    from agentic_ui_tester.vision.schemas import BoundingBoxesResult

    with pytest.raises(ModelResponseError):
        BoundingBoxesResult.parse(text)


def test_selection_result():
    from agentic_ui_tester.vision.schemas import ElementSelectionResult

    result = ElementSelectionResult.parse('{"success": true, "boundingBoxId": " ab12 ", "message": "toolbar"}')
    assert result.success is True
    assert result.bounding_box_id == "ab12"

    failed = ElementSelectionResult.parse('{"success": false, "boundingBoxId": null}')
    assert failed.success is False
    assert failed.bounding_box_id == ""


def test_selection_result_requires_success_flag():
    from agentic_ui_tester.errors import ModelResponseError
    from agentic_ui_tester.vision.schemas import ElementSelectionResult

    with pytest.raises(ModelResponseError):
        ElementSelectionResult.parse('{"boundingBoxId": "ab12"}')


def test_model_coordinates_map_to_pixels():
    from agentic_ui_tester.locator.grounding import to_pixel_box
    from agentic_ui_tester.locator.types import BoundingBox
    from agentic_ui_tester.vision.schemas import RawBox

    assert to_pixel_box(RawBox(100, 200, 300, 400), 1920, 1080, 1000) == BoundingBox(192, 216, 384, 216)
    assert to_pixel_box(RawBox(10, 20, 30, 40), 1920, 1080, 0) == BoundingBox(10, 20, 20, 20)
    assert to_pixel_box(RawBox(5, 5, 5, 9), 100, 100, 0) is None


def test_downscale_ratio_respects_both_limits():
    from agentic_ui_tester.locator.grounding import downscale_ratio

    assert downscale_ratio(1000, 800, 1568, 1.15) == 1.0
    assert downscale_ratio(3136, 100, 1568, 1.15) == pytest.approx(0.5)
    ratio = downscale_ratio(1920, 1080, 1568, 1.15)
    assert 1920 * 1080 * ratio ** 2 == pytest.approx(1_150_000, rel=1e-6)
    assert downscale_ratio(0, 20, 1568, 1.15) == 1.0


@pytest.mark.parametrize("payload", [
    {"choices": []},
    {"choices": [{"message": {}}]},
    {"error": {"message": "rate limited"}},
])
def test_malformed_chat_completion_is_a_response_error(payload):
    from agentic_ui_tester.errors import ModelResponseError
    from agentic_ui_tester.vision.base import chat_completion_text

    with pytest.raises(ModelResponseError):
        chat_completion_text(payload)


def test_non_json_provider_body_is_a_response_error():
    import httpx
    from agentic_ui_tester.errors import ModelResponseError
    from agentic_ui_tester.vision.base import response_json

    with pytest.raises(ModelResponseError):
        response_json(httpx.Response(200, text="<html>gateway error</html>"))
    with pytest.raises(ModelResponseError):
        response_json(httpx.Response(200, json=["not", "an", "object"]))


@pytest.mark.asyncio
async def test_vllm_backend_reports_malformed_payload(monkeypatch):
    import httpx
    from agentic_ui_tester.errors import ModelResponseError
    from agentic_ui_tester.vision.backends.vllm import VLLMBackend

    real_client = httpx.AsyncClient

    def handler(request):
        return httpx.Response(200, json={"id": "cmpl-1", "choices": []})

    monkeypatch.setattr(httpx, "AsyncClient",
                        lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs))

    with pytest.raises(ModelResponseError):
        await VLLMBackend().generate("find it", [b"\x89PNG\r\n\x1a\n"])
