import pytest
from roundcaddy.services.round_service import RoundService


@pytest.fixture
def round_payload():
    return {
        "course_name": "Torrey Pines South",
        "course_id": "course_123",
        "played_at": "2026-03-14T15:00:00Z",
        "total_score": 84,
        "total_putts": 33,
        "fairways_hit": 8,
        "gir": 7,
        "penalties": 2,
        "course_rating": 75.3,
        "slope_rating": 144,
    }


def _create(client, payload):
    response = client.post("/rounds", json=payload)
    assert response.status_code == 201
    return response.json()


def test_create_round(client, round_payload):
    data = _create(client, round_payload)

    assert data["course_name"] == "Torrey Pines South"
    assert data["total_score"] == 84
    assert data["fairways_total"] == 14
    assert data["penalties"] == 2
    assert data["user_id"] == "test_user_123"
    assert data["id"] > 0


def test_create_round_defaults(client):
    data = _create(client, {"course_name": "Muni", "total_score": 90})

    assert data["fairways_total"] == 14
    assert data["penalties"] == 0
    assert data["played_at"] is not None


@pytest.mark.parametrize("changes,message", [
    ({"total_score": 0}, "Please enter a valid score"),
    ({"total_score": -3}, "Please enter a valid score"),
    ({"course_name": "   "}, "Please select or enter a course name"),
])
def test_create_round_validation(client, round_payload, changes, message):
    response = client.post("/rounds", json={**round_payload, **changes})

    assert response.status_code == 400
    assert response.json()["detail"] == message


@pytest.mark.parametrize("field,message", [
    ("total_score", "Please enter a valid score"),
    ("course_name", "Please select or enter a course name"),
])
def test_create_round_missing_required_field(client, round_payload, field, message):
    del round_payload[field]
    response = client.post("/rounds", json=round_payload)

    assert response.status_code == 400
    assert response.json()["detail"] == message


def test_list_rounds_most_recent_first(client, round_payload):
    older = _create(client, {**round_payload, "played_at": "2026-01-01T10:00:00Z"})
    newer = _create(client, {**round_payload, "played_at": "2026-02-01T10:00:00Z"})

    ids = [r["id"] for r in client.get("/rounds").json()]
    assert ids == [newer["id"], older["id"]]


def test_get_round_not_found(client):
    response = client.get("/rounds/999")

    assert response.status_code == 404
    assert response.json()["detail"] == "Round not found"


def test_update_round_replaces_edit_form(client, round_payload):
    created = _create(client, round_payload)

    response = client.patch(f"/rounds/{created['id']}", json={
        "course_name": "  Torrey Pines North ",
        "total_score": 81,
        "total_putts": 30,
    })

    assert response.status_code == 200
    data = response.json()
    assert data["course_name"] == "Torrey Pines North"
    assert data["total_score"] == 81
    assert data["total_putts"] == 30
    # Left blank on the form
    assert data["fairways_hit"] is None
    assert data["gir"] is None
    assert data["course_id"] is None
    assert data["fairways_total"] == 14
    assert data["penalties"] == 0
    # Not part of the form
    assert data["played_at"].startswith("2026-03-14")


def test_update_round_validation(client, round_payload):
    created = _create(client, round_payload)

    response = client.patch(f"/rounds/{created['id']}", json={"course_name": "Torrey"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Please enter a valid score"

    # Nothing changed
    assert client.get(f"/rounds/{created['id']}").json()["total_score"] == 84


def test_update_missing_round(client):
    response = client.patch("/rounds/42", json={"course_name": "Anywhere", "total_score": 70})
    assert response.status_code == 404


def test_update_round_failure_reports_reason(client, round_payload, monkeypatch):
    created = _create(client, round_payload)

    def fail(self, user_id, round_id, data):
        raise RuntimeError("database is locked")

    monkeypatch.setattr(RoundService, "update", fail)
    response = client.patch(f"/rounds/{created['id']}", json={"course_name": "Torrey", "total_score": 80})

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to update round: database is locked"


def _hole(par, score, putts, **extra):
    return {"par": par, "score": score, "putts": putts, **extra}


def test_create_round_from_holes_calculates_strokes_gained(client):
    holes = [
        _hole(4, 4, 2, fairway_hit=True, gir=True, approach_distance=150,
              approach_result="green", first_putt_distance=20),
        _hole(4, 5, 2, fairway_hit=False, gir=False, approach_distance=140,
              approach_result="greenside_rough", first_putt_distance=10, penalties=1),
        _hole(3, 3, 2, gir=True, first_putt_distance=15),
    ]

    data = _create(client, {"course_name": "Pebble", "holes": holes, "sg_total": 9.9})

    # Totals summed from the holes
    assert data["total_score"] == 12
    assert data["total_putts"] == 6
    assert data["gir"] == 2
    assert data["fairways_hit"] == 1
    assert data["fairways_total"] == 2
    assert data["penalties"] == 1
    # Calculated breakdown replaces what the client sent
    assert data["sg_off_tee"] == pytest.approx(0.43)
    assert data["sg_approach"] == pytest.approx(0.17)
    assert data["sg_around_green"] == pytest.approx(-0.05)
    assert data["sg_putting"] == pytest.approx(-0.83)
    assert data["sg_total"] == pytest.approx(-0.28)
    assert len(data["holes"]) == 3
    assert data["holes"][1]["approach_result"] == "greenside_rough"


def test_create_round_keeps_entered_totals(client):
    data = _create(client, {
        "course_name": "Pebble",
        "total_score": 80,
        "holes": [_hole(4, 5, 2, fairway_hit=True)],
    })

    assert data["total_score"] == 80
    assert data["total_putts"] == 2


def test_create_round_rejects_bad_hole(client):
    response = client.post("/rounds", json={"course_name": "Pebble", "holes": [_hole(4, 4, 2, approach_result="water")]})
    assert response.status_code == 422


def test_strokes_gained_summary(client, round_payload):
    empty = client.get("/rounds/strokes-gained").json()
    assert empty["rounds_count"] == 0
    assert empty["weakest_area"] is None

    _create(client, {**round_payload, "sg_total": -2.0, "sg_off_tee": 0.5, "sg_approach": -1.5,
                     "sg_around_green": 0.0, "sg_putting": -1.0})
    _create(client, {**round_payload, "sg_total": 0.0, "sg_off_tee": 0.5, "sg_approach": -0.5,
                     "sg_around_green": 0.0, "sg_putting": 0.0})
    # No breakdown, left out of the average
    _create(client, round_payload)

    response = client.get("/rounds/strokes-gained")

    assert response.status_code == 200
    data = response.json()
    assert data["rounds_count"] == 2
    assert data["sg_total"] == pytest.approx(-1.0)
    assert data["sg_approach"] == pytest.approx(-1.0)
    assert data["weakest_area"]["area"] == "Approach"
    assert data["weakest_area"]["recommendation"] == "Work on iron play and distance control with approaches"
    assert data["strongest_area"]["area"] == "Off the Tee"
