from datetime import datetime

from app.api.routes.timetable import current_semester


def entry_payload(entry_id, start, end, day="Monday", course="CS101", room="C101"):
    return {
        "id": entry_id,
        "day": day,
        "startTime": start,
        "endTime": end,
        "courseId": course,
        "roomId": room,
        "sessionType": "lecture",
    }


def test_fetch_without_timetable(client, user_headers):
    response = client.get("/api/timetable", headers=user_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["timetable"] is None
    assert body["message"] == "No timetable found"


def test_requires_user_header(client):
    response = client.get("/api/timetable")
    assert response.status_code == 401


def test_create_or_replace_records_clashes(client, user_headers):
    payload = {
        "semester": 1,
        "year": 2026,
        "entries": [
            entry_payload("e1", "09:00", "10:00"),
            entry_payload("e2", "09:30", "10:30", course="MA101"),
        ],
    }

    response = client.post("/api/timetable", json=payload, headers=user_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Timetable saved successfully"
    assert len(body["clashes"]) == 1
    clash = body["clashes"][0]
    assert clash["kind"] == "self-overlap"
    assert {clash["entryA"]["id"], clash["entryB"]["id"]} == {"e1", "e2"}
    assert len(body["timetable"]["clashes"]) == 1

    replacement = {**payload, "entries": [entry_payload("e1", "09:00", "10:00"), entry_payload("e2", "10:00", "11:00")]}
    replaced = client.post("/api/timetable", json=replacement, headers=user_headers).json()
    assert replaced["clashes"] is None
    assert replaced["timetable"]["clashes"] == []

    fetched = client.get("/api/timetable", headers=user_headers).json()
    assert [item["id"] for item in fetched["timetable"]["entries"]] == ["e1", "e2"]
    assert fetched["timetable"]["semester"] == 1


def test_add_entry_auto_creates_and_detects_clash(client, user_headers):
    first = client.post("/api/timetable/entry", json=entry_payload("e1", "09:00", "10:00"), headers=user_headers)
    assert first.status_code == 200
    created = first.json()["timetable"]
    assert created["year"] == datetime.now().year
    assert created["semester"] == current_semester()
    assert first.json()["clashes"] is None

    second = client.post(
        "/api/timetable/entry",
        json=entry_payload("e2", "09:30", "10:30", course="PH101"),
        headers=user_headers,
    )
    assert len(second.json()["clashes"]) == 1

    duplicate = client.post("/api/timetable/entry", json=entry_payload("e2", "12:00", "13:00"), headers=user_headers)
    assert duplicate.status_code == 409


def test_delete_entry_recomputes_clashes(client, user_headers):
    client.post("/api/timetable/entry", json=entry_payload("e1", "09:00", "10:00"), headers=user_headers)
    client.post("/api/timetable/entry", json=entry_payload("e2", "09:30", "10:30"), headers=user_headers)
    assert len(client.get("/api/timetable/clashes", headers=user_headers).json()["clashes"]) == 1

    response = client.delete("/api/timetable/entry/e2", headers=user_headers)

    assert response.status_code == 200
    assert [item["id"] for item in response.json()["timetable"]["entries"]] == ["e1"]
    assert response.json()["timetable"]["clashes"] == []
    assert client.get("/api/timetable/clashes", headers=user_headers).json()["clashes"] == []


def test_delete_missing_entry_or_timetable(client, user_headers):
    assert client.delete("/api/timetable/entry/nope", headers=user_headers).status_code == 404

    client.post("/api/timetable/entry", json=entry_payload("e1", "09:00", "10:00"), headers=user_headers)
    assert client.delete("/api/timetable/entry/nope", headers=user_headers).status_code == 404


def test_clashes_empty_without_timetable(client, user_headers):
    response = client.get("/api/timetable/clashes", headers=user_headers)
    assert response.status_code == 200
    assert response.json() == {"clashes": []}


def test_timetables_are_per_user(client):
    client.post("/api/timetable/entry", json=entry_payload("e1", "09:00", "10:00"), headers={"X-User-Id": "a"})

    other = client.get("/api/timetable", headers={"X-User-Id": "b"}).json()
    assert other["timetable"] is None


def test_entry_validation(client, user_headers):
    bad_order = client.post("/api/timetable/entry", json=entry_payload("e1", "10:00", "09:00"), headers=user_headers)
    assert bad_order.status_code == 422

    bad_day = client.post(
        "/api/timetable/entry", json=entry_payload("e1", "09:00", "10:00", day="Someday"), headers=user_headers
    )
    assert bad_day.status_code == 422

    short_day = client.post(
        "/api/timetable/entry", json=entry_payload("e1", "09:00", "10:00", day="Tue"), headers=user_headers
    )
    assert short_day.status_code == 200
    assert short_day.json()["timetable"]["entries"][0]["day"] == "Tuesday"


def test_current_semester_boundaries():
    assert current_semester(datetime(2026, 7, 1)) == 1
    assert current_semester(datetime(2026, 12, 31)) == 1
    assert current_semester(datetime(2026, 1, 15)) == 2
    assert current_semester(datetime(2026, 6, 30)) == 2
