"""Element repository and the description → screen location tool flow."""
import pytest

from conftest import png_bytes


def _element(name="Save button", description="Blue button with a floppy disk icon", **overrides):
    from agentic_ui_tester.locator.types import UiElement

    return UiElement(id=overrides.pop("id", ""), name=name, description=description, **overrides)


class StubLocator:
    def __init__(self, result_factory):
        self.result_factory = result_factory
        self.located = []

    async def locate(self, element, test_data=None, screenshot=None):
        self.located.append((element, test_data))
        return self.result_factory(element)


@pytest.mark.asyncio
async def test_store_roundtrip_and_replace(isolated_data):
    from agentic_ui_tester.elements import store

    stored = await store.store_element(_element(
        screenshot=png_bytes(), zoom_in_required=True, data_dependent_attributes=("label",)))
    assert stored.id

    loaded = await store.get_element(stored.id)
    assert loaded == stored
    assert loaded.is_data_dependent

    refined = loaded.with_changes(description="Blue floppy-disk button, tooltip 'Save'")
    assert await store.replace_element(stored.id, refined) is True
    assert (await store.get_element(stored.id)).description == "Blue floppy-disk button, tooltip 'Save'"
    assert loaded.description == "Blue button with a floppy disk icon"

    assert await store.replace_element("missing", refined) is False
    assert await store.remove_element(stored.id) is True
    assert await store.get_element(stored.id) is None


@pytest.mark.asyncio
async def test_retrieval_ranks_by_similarity(isolated_data):
    from agentic_ui_tester.elements import store

    await store.store_element(_element("Save button"))
    await store.store_element(_element("Search field", "Text input with a magnifier icon"))

    results = await store.retrieve_candidates("Save button", top_n=5, min_score=0.0)
    assert results[0].element.name == "Save button"
    assert results[0].score == pytest.approx(1.0)
    assert [r.score for r in results] == sorted((r.score for r in results), reverse=True)


@pytest.mark.asyncio
async def test_replace_re_embeds_the_new_name(isolated_data):
    from agentic_ui_tester.elements import store

    stored = await store.store_element(_element("Save button"))
    await store.replace_element(stored.id, stored.with_changes(name="Export button"))

    results = await store.retrieve_candidates("Export button", top_n=5, min_score=0.0)
    assert results[0].element.id == stored.id
    assert results[0].score == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_reworded_description_resolves_by_embedding(isolated_data, fake_embeddings):
    from agentic_ui_tester import tools
    from agentic_ui_tester.elements import store
    from agentic_ui_tester.locator.coordinates import CoordinateMapper
    from agentic_ui_tester.locator.types import BoundingBox, Found

    # Close to "save button" in embedding space, sharing only one word with it
    fake_embeddings.vectors["the save button in the toolbar"] = (
        0.9 * fake_embeddings.vector("save button") + 0.3 * fake_embeddings.vector("toolbar"))

    await store.store_element(_element("Save button"))
    await store.store_element(_element("Search field", "Text input with a magnifier icon"))

    results = await store.retrieve_candidates("the save button in the toolbar", top_n=5, min_score=0.0)
    assert results[0].element.name == "Save button"
    assert results[0].score > 0.9

    locator = StubLocator(lambda el: Found(BoundingBox(10, 10, 20, 20), el))
    location = await tools.locate_element_on_screen(
        "the save button in the toolbar", locator=locator, mapper=CoordinateMapper(1.0, 1.0))
    assert location.element_name == "Save button"


@pytest.mark.asyncio
async def test_located_element_is_reported_in_logical_coordinates(isolated_data):
    from agentic_ui_tester import tools
    from agentic_ui_tester.elements import store
    from agentic_ui_tester.locator.coordinates import CoordinateMapper
    from agentic_ui_tester.locator.types import BoundingBox, Found

    await store.store_element(_element())
    locator = StubLocator(lambda el: Found(BoundingBox(200, 100, 40, 20), el, "fusion:union_of_signals"))

    location = await tools.locate_element_on_screen(
        "Save button", "n/a", locator=locator, mapper=CoordinateMapper(2.0, 2.0))

    assert (location.x, location.y) == (110, 55)
    assert location.box == BoundingBox(100, 50, 20, 10)
    assert location.element_name == "Save button"
    assert locator.located[0][1] == "n/a"


@pytest.mark.asyncio
async def test_empty_store_reports_no_elements(isolated_data):
    from agentic_ui_tester import tools
    from agentic_ui_tester.errors import ElementLocationError, ElementLocationStatus

    with pytest.raises(ElementLocationError) as exc_info:
        await tools.locate_element_on_screen("Save button", locator=StubLocator(pytest.fail))
    assert exc_info.value.status == ElementLocationStatus.NO_ELEMENTS_FOUND_IN_DB


@pytest.mark.asyncio
async def test_weak_matches_report_low_score(isolated_data):
    from agentic_ui_tester import tools
    from agentic_ui_tester.elements import store
    from agentic_ui_tester.errors import ElementLocationError, ElementLocationStatus

    await store.store_element(_element())
    with pytest.raises(ElementLocationError) as exc_info:
        await tools.locate_element_on_screen("Print preview dialog", locator=StubLocator(pytest.fail))
    assert exc_info.value.status == ElementLocationStatus.SIMILAR_ELEMENTS_IN_DB_BUT_SCORE_TOO_LOW


@pytest.mark.asyncio
@pytest.mark.parametrize("algorithmic, visual, status", [
    (False, False, "ELEMENT_NOT_FOUND_ON_SCREEN_VISUAL_AND_ALGORITHMIC_FAILED"),
    (False, True, "ELEMENT_NOT_FOUND_ON_SCREEN_VALIDATION_FAILED"),
    (True, True, "ELEMENT_NOT_FOUND_ON_SCREEN_VALIDATION_FAILED"),
])
async def test_not_found_maps_to_status(isolated_data, algorithmic, visual, status):
    from agentic_ui_tester import tools
    from agentic_ui_tester.elements import store
    from agentic_ui_tester.errors import ElementLocationError
    from agentic_ui_tester.locator.types import NotFound

    await store.store_element(_element())
    locator = StubLocator(lambda el: NotFound(algorithmic, visual, el))
    with pytest.raises(ElementLocationError) as exc_info:
        await tools.locate_element_on_screen("Save button", locator=locator)
    assert exc_info.value.status.value == status


@pytest.mark.asyncio
async def test_blank_description_rejected_before_retrieval(isolated_data):
    from agentic_ui_tester import tools
    from agentic_ui_tester.errors import InvalidElementError

    with pytest.raises(InvalidElementError):
        await tools.locate_element_on_screen("  ", locator=StubLocator(pytest.fail))


@pytest.mark.asyncio
async def test_click_element_clicks_logical_centre(isolated_data, monkeypatch):
    from agentic_ui_tester import tools
    from agentic_ui_tester.desktop import control
    from agentic_ui_tester.elements import store
    from agentic_ui_tester.locator.types import BoundingBox, Found

    clicks = []
    monkeypatch.setattr(control, "mouse_click_at", lambda x, y, button=1: clicks.append((x, y, button)) or True)
    monkeypatch.setattr(tools.CoordinateMapper, "for_display", classmethod(lambda cls, display_str=None: cls(1.0, 1.0)))

    await store.store_element(_element())
    locator = StubLocator(lambda el: Found(BoundingBox(10, 20, 30, 40), el))
    location = await tools.click_element("Save button", button=3, locator=locator)

    assert clicks == [(25, 40, 3)]
    assert location.element_name == "Save button"
