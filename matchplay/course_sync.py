import logging
import os
from typing import Any, Optional

import requests

from matchplay.store import DocumentStore

logger = logging.getLogger(__name__)

API_BASE = "https://api.golfcourseapi.com/v1"
TEE_GENDERS = ("male", "female")


class GolfApiError(Exception):
    pass


def _headers(api_key: str) -> dict[str, str]:
    key = api_key or os.getenv("GOLF_API_KEY", "")
    if not key:
        raise GolfApiError("Missing Golf Course API key.")
    return {"Authorization": f"Key {key}"}


def fetch_course(course_id: int, api_key: str) -> dict[str, Any]:
    response = requests.get(
        f"{API_BASE}/courses/{course_id}",
        headers=_headers(api_key),
        timeout=20,
    )
    if response.status_code != 200:
        raise GolfApiError(f"Course fetch failed: {response.status_code} {response.text}")
    payload = response.json()
    course = payload.get("course") if isinstance(payload, dict) else None
    if not isinstance(course, dict) or "id" not in course:
        raise GolfApiError(f"Course fetch returned unexpected data for id {course_id}: {response.text}")
    return course


def _pick_tee(course: dict[str, Any], tee_name: Optional[str]) -> Optional[dict]:
    tees_payload = course.get("tees") or {}
    tees = [tee for gender in TEE_GENDERS for tee in tees_payload.get(gender) or []]
    if tee_name:
        wanted = tee_name.strip().lower()
        match = next((tee for tee in tees if (tee.get("tee_name") or "").lower() == wanted), None)
        if match is None:
            raise GolfApiError(f"Tee {tee_name!r} not found for course {course.get('id')}")
        return match
    return tees[0] if tees else None


def build_course_document(course: dict[str, Any], tee_name: Optional[str] = None) -> dict:
    """Shape an API course payload as a ``courses`` document with par and per-hole data."""
    tee = _pick_tee(course, tee_name)
    holes = []
    for idx, hole in enumerate((tee or {}).get("holes") or [], 1):
        holes.append(
            {
                "number": hole.get("hole_number") or idx,
                "par": hole.get("par") or 4,
                "hcpIndex": hole.get("handicap") or idx,
                "yards": hole.get("yardage"),
            }
        )
    location = course.get("location") or {}
    document = {
        "name": course.get("course_name") or "",
        "clubName": course.get("club_name") or "",
        "location": {key: location.get(key) for key in ("city", "state", "country")},
        "externalId": course["id"],
        "tee": (tee or {}).get("tee_name"),
        "holes": holes,
    }
    par_total = (tee or {}).get("par_total")
    document["par"] = par_total or sum(hole["par"] for hole in holes) or None
    return document


def import_course(
    store: DocumentStore,
    course_id: int,
    api_key: str,
    doc_id: Optional[str] = None,
    tee_name: Optional[str] = None,
) -> dict:
    course = fetch_course(course_id, api_key)
    document = build_course_document(course, tee_name)
    doc_id = doc_id or str(course["id"])
    store.set("courses", doc_id, document)
    logger.info(
        "Imported course %s (%s holes, par %s) as courses/%s",
        document["name"],
        len(document["holes"]),
        document["par"],
        doc_id,
    )
    return {"id": doc_id, **document}
