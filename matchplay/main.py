from typing import Annotated, Any, Optional, Union

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, ValidationError

from matchplay.controller import DERIVED_FIELDS, recompute_match
from matchplay.course_sync import GolfApiError, import_course
from matchplay.facts import FACTS_COLLECTION, refresh_match_facts
from matchplay.formats import HOLE_COUNT
from matchplay.rollup import STATS_COLLECTION
from matchplay.settings import configure_logging, load_settings
from matchplay.store import Transaction, open_store
from matchplay.triggers import build_dispatcher

app = FastAPI(title="Match Play Scoring")

settings = load_settings()
store = open_store(settings.database_url)
dispatcher = build_dispatcher(store)

WRITABLE_COLLECTIONS = ("tournaments", "rounds", "courses", "matches")
READABLE_COLLECTIONS = WRITABLE_COLLECTIONS + (FACTS_COLLECTION, STATS_COLLECTION)

Number = Union[StrictInt, StrictFloat]
Drive = Annotated[StrictInt, Field(ge=0, le=1)]
PairGross = Annotated[list[Optional[Number]], Field(min_length=2, max_length=2)]


class MatchPlayerPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    playerId: str
    strokesReceived: list[Any] = []


class MatchPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    tournamentId: Optional[str] = None
    roundId: Optional[str] = None
    teamAPlayers: list[MatchPlayerPayload] = []
    teamBPlayers: list[MatchPlayerPayload] = []
    courseHandicaps: Optional[list[Optional[Number]]] = None
    holes: dict[str, Any] = {}


class HoleEntryPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    teamAGross: Optional[Number] = None
    teamBGross: Optional[Number] = None
    teamAPlayerGross: Optional[Number] = None
    teamBPlayerGross: Optional[Number] = None
    teamAPlayersGross: Optional[PairGross] = None
    teamBPlayersGross: Optional[PairGross] = None
    teamADrive: Optional[Drive] = None
    teamBDrive: Optional[Drive] = None


def _invalid(message: str, details: Any) -> JSONResponse:
    return JSONResponse({"error": message, "details": details}, status_code=422)


def _require(collection: str, doc_id: str) -> dict:
    doc = store.get(collection, doc_id)
    if doc is None:
        raise HTTPException(status_code=404, detail=f"{collection}/{doc_id} not found")
    return doc


def _with_stored_derived_fields(doc_id: str, body: dict) -> dict:
    body = {key: value for key, value in body.items() if key not in DERIVED_FIELDS}
    existing = store.get("matches", doc_id) or {}
    for key in DERIVED_FIELDS:
        if key in existing:
            body[key] = existing[key]
    return body


@app.on_event("startup")
def startup() -> None:
    configure_logging(settings)
    store.ensure_schema()


@app.get("/api/health")
async def api_health():
    return {"status": "ok"}


@app.put("/api/{collection}/{doc_id}")
async def api_put_document(collection: str, doc_id: str, request: Request):
    if collection not in WRITABLE_COLLECTIONS:
        raise HTTPException(status_code=404, detail=f"Unknown collection {collection}")
    try:
        body = await request.json()
    except ValueError:
        return _invalid("Invalid payload", "Body must be JSON")
    if not isinstance(body, dict):
        return _invalid("Invalid payload", "Body must be a JSON object")
    if collection == "matches":
        try:
            MatchPayload.model_validate(body)
        except ValidationError as exc:
            return _invalid("Invalid payload", exc.errors(include_url=False))
        body = _with_stored_derived_fields(doc_id, body)
    store.set(collection, doc_id, body)
    return {"id": doc_id, **(store.get(collection, doc_id) or {})}


@app.get("/api/{collection}/{doc_id}")
async def api_get_document(collection: str, doc_id: str):
    if collection not in READABLE_COLLECTIONS:
        raise HTTPException(status_code=404, detail=f"Unknown collection {collection}")
    return {"id": doc_id, **_require(collection, doc_id)}


@app.delete("/api/matches/{match_id}")
async def api_delete_match(match_id: str):
    _require("matches", match_id)
    store.delete("matches", match_id)
    return {"deleted": match_id}


@app.patch("/api/matches/{match_id}/holes/{hole}")
async def api_update_hole(match_id: str, hole: int, request: Request):
    if not 1 <= hole <= HOLE_COUNT:
        return _invalid("Invalid hole", f"Hole must be between 1 and {HOLE_COUNT}")
    try:
        payload = HoleEntryPayload.model_validate(await request.json())
    except ValidationError as exc:
        return _invalid("Invalid payload", exc.errors(include_url=False))
    except ValueError:
        return _invalid("Invalid payload", "Body must be JSON")
    updates = payload.model_dump(exclude_unset=True)

    def _merge_hole(tx: Transaction) -> bool:
        match = tx.get("matches", match_id)
        if match is None:
            return False
        holes = dict(match.get("holes") or {})
        entry = dict(holes.get(str(hole)) or {})
        current = dict(entry.get("input") or {})
        for key, value in updates.items():
            if value is None:
                current.pop(key, None)
            else:
                current[key] = value
        entry["input"] = current
        holes[str(hole)] = entry
        tx.update("matches", match_id, {"holes": holes})
        return True

    if not store.run_transaction(_merge_hole):
        raise HTTPException(status_code=404, detail=f"matches/{match_id} not found")
    return {"id": match_id, **_require("matches", match_id)}


@app.post("/api/matches/{match_id}/recompute")
async def api_recompute_match(match_id: str):
    match = _require("matches", match_id)
    status_changed = recompute_match(store, match_id, match)
    match = _require("matches", match_id)
    fact_writes = refresh_match_facts(store, match_id, match)
    return {
        "id": match_id,
        "statusChanged": status_changed,
        "factWrites": fact_writes,
        "status": match.get("status"),
        "result": match.get("result"),
    }


@app.get("/api/matches/{match_id}/facts")
async def api_match_facts(match_id: str):
    _require("matches", match_id)
    facts = store.where(FACTS_COLLECTION, "matchId", match_id)
    return {"facts": [{"id": doc_id, **data} for doc_id, data in facts]}


@app.get("/api/players/{player_id}/facts")
async def api_player_facts(player_id: str):
    facts = store.where(FACTS_COLLECTION, "playerId", player_id)
    return {"facts": [{"id": doc_id, **data} for doc_id, data in facts]}


@app.get("/api/players/{player_id}/stats")
async def api_player_stats(player_id: str):
    return {"id": player_id, **_require(STATS_COLLECTION, player_id)}


@app.post("/api/courses/import/{course_id}")
async def api_course_import(course_id: int):
    try:
        course = import_course(store, course_id, settings.golf_api_key)
    except GolfApiError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    return course
