import pytest

from matchplay import course_sync
from matchplay.course_sync import GolfApiError, build_course_document, fetch_course, import_course

API_COURSE = {
    "id": 4411,
    "club_name": "Harbour Links",
    "course_name": "Harbour Links",
    "location": {"city": "Portree", "state": "", "country": "Scotland", "latitude": 57.4},
    "tees": {
        "male": [
            {
                "tee_name": "White",
                "par_total": 71,
                "holes": [{"par": 4, "yardage": 380, "handicap": 7}, {"par": 3, "yardage": 160, "handicap": 15}],
            },
            {"tee_name": "Yellow", "holes": [{"par": 5, "yardage": 470}]},
        ],
    },
}


class FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload
        self.text = str(payload)

    def json(self):
        return self._payload


def test_course_document_uses_first_tee_by_default():
    document = build_course_document(API_COURSE)

    assert document["name"] == "Harbour Links"
    assert document["tee"] == "White"
    assert document["par"] == 71
    assert document["externalId"] == 4411
    assert document["location"] == {"city": "Portree", "state": "", "country": "Scotland"}
    assert document["holes"] == [
        {"number": 1, "par": 4, "hcpIndex": 7, "yards": 380},
        {"number": 2, "par": 3, "hcpIndex": 15, "yards": 160},
    ]


def test_course_document_sums_hole_pars_without_a_total():
    document = build_course_document(API_COURSE, tee_name="yellow")

    assert document["tee"] == "Yellow"
    assert document["par"] == 5
    assert document["holes"] == [{"number": 1, "par": 5, "hcpIndex": 1, "yards": 470}]


def test_unknown_tee_is_an_error():
    with pytest.raises(GolfApiError):
        build_course_document(API_COURSE, tee_name="Gold")


def test_missing_api_key_is_an_error(monkeypatch):
    monkeypatch.delenv("GOLF_API_KEY", raising=False)
    with pytest.raises(GolfApiError):
        fetch_course(4411, "")


def test_failed_fetch_raises(monkeypatch):
    monkeypatch.setattr(course_sync.requests, "get", lambda *args, **kwargs: FakeResponse(404, {"error": "nope"}))
    with pytest.raises(GolfApiError):
        fetch_course(4411, "key")


def test_import_course_writes_a_course_document(store, monkeypatch):
    seen = {}

    def fake_get(url, headers=None, timeout=None, **kwargs):
        seen["url"] = url
        seen["headers"] = headers
        return FakeResponse(200, {"course": API_COURSE})

    monkeypatch.setattr(course_sync.requests, "get", fake_get)

    course = import_course(store, 4411, "secret", doc_id="harbour")

    assert seen["url"].endswith("/courses/4411")
    assert seen["headers"] == {"Authorization": "Key secret"}
    assert course["id"] == "harbour"
    assert store.get("courses", "harbour")["par"] == 71
