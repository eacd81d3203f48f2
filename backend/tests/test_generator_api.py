def cohort(cohort_id, start="09:00", end="11:00", breaks=None, department=None):
    payload = {
        "cohortId": cohort_id,
        "dailyWindow": {"start": start, "end": end},
        "breakWindows": breaks or [],
        "slotDurationMinutes": 60,
        "workingDays": ["Mon"],
    }
    if department:
        payload["department"] = department
    return payload


def session(course_id, cohort_id, *faculty, room=None):
    payload = {"courseId": course_id, "cohortId": cohort_id, "facultyCandidates": list(faculty)}
    if room:
        payload["roomId"] = room
    return payload


def test_presets_are_listed(client):
    response = client.get("/api/generator/presets")

    assert response.status_code == 200
    presets = {item["name"]: item["constraint"] for item in response.json()}
    assert presets["year1to3"]["dailyWindow"] == {"start": "08:15", "end": "16:00"}
    assert presets["finalYear"]["breakWindows"][1] == {"start": "13:15", "end": "14:15"}
    assert presets["finalYear"]["workingDays"][0] == "Monday"


def test_generate_places_sessions_and_stores_each_cohort(client):
    payload = {
        "cohorts": [cohort("cse-2a", department="CSE"), cohort("cse-2b", department="CSE")],
        "requests": [
            session("cs201", "cse-2a", "f1"),
            session("cs202", "cse-2b", "f2"),
            session("cs203", "cse-2b", "f1"),
        ],
    }

    response = client.post("/api/generator/generate", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert body["stage"] == "done"
    assert len(body["entries"]) == 2
    assert [item["courseId"] for item in body["unplaceable"]] == ["cs203"]
    assert body["unplaceable"][0]["roomId"] == "C101"
    assert body["unresolvedConflicts"] == []

    stored = client.get("/api/generator/cohorts/cse-2b").json()
    assert stored["generatedBy"] == "automated_system"
    assert [item["courseId"] for item in stored["entries"]] == ["cs202"]
    assert [item["courseId"] for item in stored["unplaceable"]] == ["cs203"]
    assert stored["constraint"]["dailyWindow"] == {"start": "09:00", "end": "11:00"}
    assert client.get("/api/generator/cohorts/cse-2b/clashes").json() == []


def test_invalid_constraint_is_a_400_naming_the_field(client):
    payload = {"cohorts": [cohort("bad", start="16:00", end="08:00")], "requests": []}

    response = client.post("/api/generator/generate", json=payload)

    assert response.status_code == 400
    assert response.json()["details"]["field"] == "daily_window"
    assert client.get("/api/generator/cohorts/bad").status_code == 404


def test_requests_must_reference_known_cohorts(client):
    payload = {"cohorts": [cohort("cse-2a")], "requests": [session("cs201", "ghost", "f1")]}

    assert client.post("/api/generator/generate", json=payload).status_code == 422


def test_replacing_one_cohort_keeps_other_cohorts_faculty_free(client):
    client.post(
        "/api/generator/generate",
        json={"cohorts": [cohort("ece-3a")], "requests": [session("ec301", "ece-3a", "f1", room="E201")]},
    )

    response = client.put(
        "/api/generator/cohorts/cse-3a",
        json={"constraint": cohort("cse-3a"), "requests": [session("cs301", "cse-3a", "f1", room="C101")]},
    )

    assert response.status_code == 200
    placed = response.json()["entries"]
    assert [(item["courseId"], item["startTime"]) for item in placed] == [("cs301", "10:00")]
    assert client.get("/api/generator/cohorts/cse-3a/clashes").json() == []
    assert client.get("/api/generator/cohorts/ece-3a").json()["entries"][0]["startTime"] == "09:00"


def test_regeneration_replaces_previous_entries(client):
    client.put(
        "/api/generator/cohorts/cse-1a",
        json={"constraint": cohort("cse-1a"), "requests": [session("a", "cse-1a", "f1"), session("b", "cse-1a", "f2")]},
    )
    client.put(
        "/api/generator/cohorts/cse-1a",
        json={"constraint": {"cohortId": "cse-1a", "preset": "year1to3"}, "requests": [session("c", "cse-1a", "f3")]},
    )

    stored = client.get("/api/generator/cohorts/cse-1a").json()
    assert [item["courseId"] for item in stored["entries"]] == ["c"]
    assert stored["entries"][0]["startTime"] == "08:15"


def test_put_rejects_mismatched_cohort(client):
    response = client.put(
        "/api/generator/cohorts/cse-1a",
        json={"constraint": cohort("cse-1b"), "requests": []},
    )
    assert response.status_code == 400

    foreign = client.put(
        "/api/generator/cohorts/cse-1a",
        json={"constraint": cohort("cse-1a"), "requests": [session("x", "cse-1b", "f1")]},
    )
    assert foreign.status_code == 400


def test_missing_cohort_timetable_is_404(client):
    response = client.get("/api/generator/cohorts/nobody")

    assert response.status_code == 404
    assert "nobody" in response.json()["message"]
    assert client.get("/api/generator/cohorts/nobody/clashes").status_code == 404
