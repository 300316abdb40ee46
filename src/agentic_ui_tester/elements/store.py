"""SQLite repository of reference UI elements, keyed by element id.

Records are immutable: refining an element means building a new UiElement
(``element.with_changes(...)``) and replacing the stored one by id.
"""
import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

import aiosqlite

from .. import config, debug
from . import embeddings
from ..locator.types import UiElement

log = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS ui_elements (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT NOT NULL,
    location_details TEXT NOT NULL DEFAULT '',
    page_summary TEXT NOT NULL DEFAULT '',
    screenshot BLOB,
    zoom_in_required INTEGER NOT NULL DEFAULT 0,
    data_dependent_attributes TEXT NOT NULL DEFAULT '[]',
    embedding BLOB NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_ui_elements_name ON ui_elements(name);
"""

@dataclass(frozen=True)
class RetrievedElement:
    element: UiElement
    score: float


async def get_db() -> aiosqlite.Connection:
    config.ensure_data_dir()
    db_conn = await aiosqlite.connect(str(config.DB_PATH))
    db_conn.row_factory = aiosqlite.Row
    await db_conn.executescript(SCHEMA)
    return db_conn


def new_id() -> str:
    return str(uuid.uuid4())


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_element(row: aiosqlite.Row) -> UiElement:
    return UiElement(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        location_details=row["location_details"],
        page_summary=row["page_summary"],
        screenshot=row["screenshot"],
        zoom_in_required=bool(row["zoom_in_required"]),
        data_dependent_attributes=tuple(json.loads(row["data_dependent_attributes"])),
    )


async def store_element(element: UiElement) -> UiElement:
    """Insert a new element and its name embedding. A blank id is replaced by a fresh one."""
    if not element.id:
        element = element.with_changes(id=new_id())
    vector = await embeddings.embed(element.name)
    ts = now_iso()
    db = await get_db()
    try:
        await db.execute(
            "INSERT INTO ui_elements (id, name, description, location_details, page_summary, screenshot, "
            "zoom_in_required, data_dependent_attributes, embedding, created_at, updated_at) "
            "VALUES (?,?,?,?,?,?,?,?,?,?,?)",
            (element.id, element.name, element.description, element.location_details, element.page_summary,
             element.screenshot, int(element.zoom_in_required),
             json.dumps(list(element.data_dependent_attributes)), embeddings.to_blob(vector), ts, ts),
        )
        await db.commit()
    finally:
        await db.close()
    debug.log("STORE", f"Stored element '{element.name}' ({element.id})")
    return element


async def get_element(element_id: str) -> UiElement | None:
    db = await get_db()
    try:
        cursor = await db.execute("SELECT * FROM ui_elements WHERE id = ?", (element_id,))
        row = await cursor.fetchone()
        return _row_to_element(row) if row else None
    finally:
        await db.close()


async def list_elements() -> list[UiElement]:
    db = await get_db()
    try:
        cursor = await db.execute("SELECT * FROM ui_elements ORDER BY name")
        return [_row_to_element(row) for row in await cursor.fetchall()]
    finally:
        await db.close()


async def replace_element(element_id: str, element: UiElement) -> bool:
    """Replace the record stored under *element_id*. Returns False if it does not exist."""
    if element.id != element_id:
        element = element.with_changes(id=element_id)
    vector = await embeddings.embed(element.name)
    db = await get_db()
    try:
        cursor = await db.execute(
            "UPDATE ui_elements SET name=?, description=?, location_details=?, page_summary=?, screenshot=?, "
            "zoom_in_required=?, data_dependent_attributes=?, embedding=?, updated_at=? WHERE id=?",
            (element.name, element.description, element.location_details, element.page_summary,
             element.screenshot, int(element.zoom_in_required),
             json.dumps(list(element.data_dependent_attributes)), embeddings.to_blob(vector),
             now_iso(), element_id),
        )
        await db.commit()
        replaced = cursor.rowcount > 0
    finally:
        await db.close()
    debug.log("STORE", f"Replace element {element_id}: {'ok' if replaced else 'not found'}")
    return replaced


async def remove_element(element_id: str) -> bool:
    db = await get_db()
    try:
        cursor = await db.execute("DELETE FROM ui_elements WHERE id = ?", (element_id,))
        await db.commit()
        return cursor.rowcount > 0
    finally:
        await db.close()


async def retrieve_candidates(query: str, top_n: int = None, min_score: float = None) -> list[RetrievedElement]:
    """Elements whose name is semantically closest to *query*, best first.

    Scores are cosine relevance in [0, 1] between the query embedding and the
    stored name embeddings.
    """
    top_n = top_n or config.RETRIEVER_TOP_N
    min_score = config.ELEMENT_RETRIEVAL_MIN_GENERAL_SCORE if min_score is None else min_score
    query_vector = await embeddings.embed(query)

    db = await get_db()
    try:
        cursor = await db.execute("SELECT * FROM ui_elements")
        rows = await cursor.fetchall()
    finally:
        await db.close()

    scored = []
    for row in rows:
        score = embeddings.relevance_score(query_vector, embeddings.from_blob(row["embedding"]))
        if score >= min_score:
            scored.append(RetrievedElement(_row_to_element(row), score))
    scored.sort(key=lambda r: r.score, reverse=True)
    result = scored[:top_n]
    debug.log("STORE", f"Retrieved {len(result)} candidates for '{query}'",
              {r.element.name: r.score for r in result})
    return result
