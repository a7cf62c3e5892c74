import pytest
from datetime import timedelta
from roundcaddy.config import settings
from roundcaddy.models.range_session import RangeSessionRecord
from roundcaddy.services.range_session_service import RangeSessionService
from roundcaddy.services.swing_capture import utcnow
from roundcaddy.services.watch_sync import watch_sync_registry
from conftest import SWING_START, TEST_USER_ID


def _start(client, **body):
    response = client.post("/range-sessions", json=body)
    assert response.status_code == 201
    return response.json()


def _compact(sample):
    return {
        "t": sample.timestamp.timestamp(),
        "i": sample.index,
        "ax": sample.acceleration_x,
        "ay": sample.acceleration_y,
        "az": sample.acceleration_z,
        "rx": sample.rotation_x,
        "ry": sample.rotation_y,
        "rz": sample.rotation_z,
    }


def test_start_session(client):
    data = _start(client, selected_club="7 Iron", tracking_mode="3D (LiDAR)")

    assert data["selected_club"] == "7 Iron"
    assert data["tracking_mode"] == "3D (LiDAR)"
    assert data["is_active"] is True
    assert data["end_time"] is None
    assert data["swing_count"] == 0
    assert data["swings"] == []
    assert data["average_tempo"] is None


def test_list_sessions_newest_first(client):
    first = _start(client, notes="morning")
    second = _start(client, notes="evening")

    response = client.get("/range-sessions")

    assert response.status_code == 200
    ids = [s["id"] for s in response.json()]
    assert ids == [second["id"], first["id"]]
    assert "swings" not in response.json()[0]


def test_get_session_not_found(client):
    response = client.get("/range-sessions/does-not-exist")
    assert response.status_code == 404
    assert response.json()["detail"] == "Range session not found"


def test_other_users_session_is_hidden(client, db_session):
    record = RangeSessionRecord(user_id="someone_else", start_time=utcnow())
    db_session.add(record)
    db_session.commit()

    assert client.get(f"/range-sessions/{record.id}").status_code == 404
    assert client.delete(f"/range-sessions/{record.id}").status_code == 404


def test_record_camera_only_swing(client, camera_capture_payload):
    session = _start(client, selected_club="Driver")

    response = client.post(
        f"/range-sessions/{session['id']}/swings",
        json={"camera_capture": camera_capture_payload()},
    )

    assert response.status_code == 201
    swing = response.json()
    metrics = swing["combined_metrics"]
    assert swing["club"] == "Driver"
    assert swing["watch_motion_data"] is None
    assert metrics["has_camera_data"] is True
    assert metrics["has_watch_data"] is False
    assert metrics["tempo_ratio"] == pytest.approx(3.0)
    assert metrics["tempo_rating"] == "Excellent"
    assert metrics["overall_score"] == pytest.approx(90.0)
    assert metrics["x_factor"] == 45

    camera = swing["camera_capture"]
    assert camera["frame_count"] == 41
    assert [p["phase"] for p in camera["phases"]][0] == "Setup"
    assert camera["body_metrics"]["max_shoulder_turn"] == 90


def test_record_camera_and_watch_swing(client, camera_capture_payload, watch_capture_payload):
    session = _start(client)
    # Watch impact lands alongside the camera impact frame
    watch = watch_capture_payload(start=SWING_START - timedelta(milliseconds=480))

    response = client.post(
        f"/range-sessions/{session['id']}/swings",
        json={"camera_capture": camera_capture_payload(), "watch_motion_data": watch, "club": "6 Iron"},
    )

    assert response.status_code == 201
    swing = response.json()
    metrics = swing["combined_metrics"]
    assert swing["club"] == "6 Iron"
    assert metrics["has_camera_data"] is True
    assert metrics["has_watch_data"] is True
    assert metrics["tempo_ratio"] == pytest.approx(0.35 / 0.12)
    assert metrics["estimated_club_speed"] == pytest.approx(140.8)
    assert metrics["impact_quality"] == pytest.approx(11.0 / 12.0)
    # Takeaway and Watch start are 0.65s apart
    assert metrics["sync_confidence"] == 0.0

    watch_data = swing["watch_motion_data"]
    assert watch_data["sample_count"] == 122
    assert watch_data["metrics"]["lag_retained"] is True


def test_record_attaches_buffered_watch_swing(client, camera_capture_payload, make_motion_samples):
    session = _start(client)
    compact = [_compact(s) for s in make_motion_samples()]
    messages = [
        {"action": "startRangeSession", "timestamp": compact[0]["t"]},
        {"action": "motionBatch", "timestamp": compact[-1]["t"], "payload": {"samples": compact}},
        {"action": "swingStart", "timestamp": compact[0]["t"]},
        {"action": "swingEnd", "timestamp": compact[-1]["t"]},
    ]
    for message in messages:
        assert client.post("/watch/messages", json=message).status_code == 200

    response = client.post(
        f"/range-sessions/{session['id']}/swings",
        json={"camera_capture": camera_capture_payload()},
    )

    swing = response.json()
    assert swing["watch_motion_data"]["sample_count"] == 122
    # Analyzed server-side from the buffered samples
    assert swing["combined_metrics"]["tempo_ratio"] == pytest.approx(0.35 / 0.12)
    # 0.9 camera confidence, +0.1 for Watch data, less twice the 0.167s start offset
    assert swing["combined_metrics"]["sync_confidence"] == pytest.approx(2.0 / 3.0, abs=1e-3)

    # The window is only attached once
    second = client.post(
        f"/range-sessions/{session['id']}/swings",
        json={"camera_capture": camera_capture_payload()},
    ).json()
    assert second["watch_motion_data"] is None


def test_session_aggregates(client, camera_capture_payload):
    session = _start(client)
    for _ in range(3):
        client.post(f"/range-sessions/{session['id']}/swings", json={"camera_capture": camera_capture_payload()})

    data = client.get(f"/range-sessions/{session['id']}").json()

    assert data["swing_count"] == 3
    assert len(data["swings"]) == 3
    assert data["average_tempo"] == pytest.approx(3.0)
    assert data["consistency_score"] == pytest.approx(100.0)
    assert data["swings"][2]["combined_metrics"]["consistency_score"] == pytest.approx(100.0)


def test_annotate_swing(client, camera_capture_payload):
    session = _start(client)
    swing = client.post(
        f"/range-sessions/{session['id']}/swings",
        json={"camera_capture": camera_capture_payload(), "notes": "felt good"},
    ).json()

    response = client.patch(
        f"/range-sessions/{session['id']}/swings/{swing['id']}",
        json={"user_rating": 4, "club": "Driver"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["user_rating"] == 4
    assert data["club"] == "Driver"
    assert data["notes"] == "felt good"
    assert data["combined_metrics"]["tempo_ratio"] == pytest.approx(3.0)


def test_annotate_rejects_out_of_range_rating(client, camera_capture_payload):
    session = _start(client)
    swing = client.post(
        f"/range-sessions/{session['id']}/swings",
        json={"camera_capture": camera_capture_payload()},
    ).json()

    response = client.patch(f"/range-sessions/{session['id']}/swings/{swing['id']}", json={"user_rating": 6})
    assert response.status_code == 422


def test_annotate_unknown_swing(client):
    session = _start(client)
    response = client.patch(f"/range-sessions/{session['id']}/swings/nope", json={"notes": "x"})

    assert response.status_code == 404
    assert response.json()["detail"] == "Swing not found"


def test_end_session(client, camera_capture_payload):
    session = _start(client)
    client.post(f"/range-sessions/{session['id']}/swings", json={"camera_capture": camera_capture_payload()})

    response = client.post(f"/range-sessions/{session['id']}/end")

    assert response.status_code == 200
    data = response.json()
    assert data["is_active"] is False
    assert data["end_time"] is not None
    assert data["swing_count"] == 1
    # Fewer than three swings
    assert data["consistency_score"] is None


def test_ended_session_rejects_changes(client, camera_capture_payload):
    session = _start(client)
    client.post(f"/range-sessions/{session['id']}/end")

    response = client.post(
        f"/range-sessions/{session['id']}/swings",
        json={"camera_capture": camera_capture_payload()},
    )
    assert response.status_code == 409
    assert response.json()["detail"] == "Range session has already ended"
    assert client.post(f"/range-sessions/{session['id']}/end").status_code == 409


def test_delete_session(client, camera_capture_payload):
    session = _start(client)
    client.post(f"/range-sessions/{session['id']}/swings", json={"camera_capture": camera_capture_payload()})

    response = client.delete(f"/range-sessions/{session['id']}")

    assert response.status_code == 200
    assert response.json() == {"message": "Range session deleted successfully", "sessionId": session["id"]}
    assert client.get(f"/range-sessions/{session['id']}").status_code == 404


def test_swing_milestone_creates_notification(client, camera_capture_payload, monkeypatch):
    monkeypatch.setattr(settings, "swing_milestones", "2")
    session = _start(client)

    for _ in range(2):
        client.post(f"/range-sessions/{session['id']}/swings", json={"camera_capture": camera_capture_payload()})

    notifications = client.get("/notifications").json()
    assert len(notifications) == 1
    assert notifications[0]["type"] == "milestone_reached"
    assert notifications[0]["title"] == "2 range swings!"

    # No repeat on the next swing
    client.post(f"/range-sessions/{session['id']}/swings", json={"camera_capture": camera_capture_payload()})
    assert len(client.get("/notifications").json()) == 1


def test_milestone_not_repeated_after_deleting_a_session(client, camera_capture_payload, monkeypatch):
    monkeypatch.setattr(settings, "swing_milestones", "2")

    first = _start(client)
    for _ in range(2):
        client.post(f"/range-sessions/{first['id']}/swings", json={"camera_capture": camera_capture_payload()})
    client.delete(f"/range-sessions/{first['id']}")

    second = _start(client)
    for _ in range(2):
        client.post(f"/range-sessions/{second['id']}/swings", json={"camera_capture": camera_capture_payload()})

    titles = [n["title"] for n in client.get("/notifications").json()]
    assert titles == ["2 range swings!"]


def test_failed_save_keeps_buffered_watch_swing(client, camera_capture_payload, make_motion_samples, monkeypatch):
    session = _start(client)
    compact = [_compact(s) for s in make_motion_samples()]
    for message in [
        {"action": "motionBatch", "timestamp": compact[-1]["t"], "payload": {"samples": compact}},
        {"action": "swingStart", "timestamp": compact[0]["t"]},
        {"action": "swingEnd", "timestamp": compact[-1]["t"]},
    ]:
        client.post("/watch/messages", json=message)

    def fail(self, user_id):
        raise RuntimeError("disk full")

    monkeypatch.setattr(RangeSessionService, "_check_milestones", fail)
    response = client.post(f"/range-sessions/{session['id']}/swings", json={"camera_capture": camera_capture_payload()})
    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to record swing: disk full"
    assert client.get(f"/range-sessions/{session['id']}").json()["swing_count"] == 0

    monkeypatch.undo()
    retry = client.post(f"/range-sessions/{session['id']}/swings", json={"camera_capture": camera_capture_payload()})
    assert retry.status_code == 201
    assert retry.json()["watch_motion_data"]["sample_count"] == 122
    assert watch_sync_registry.get(TEST_USER_ID).take_pending_capture() is None


def test_camera_only_swing_has_no_sync_confidence(client, camera_capture_payload):
    session = _start(client)
    swing = client.post(f"/range-sessions/{session['id']}/swings", json={"camera_capture": camera_capture_payload()}).json()

    assert swing["combined_metrics"]["sync_confidence"] is None


@pytest.mark.parametrize("change", [
    {"confidence": 1.5},
    {"confidence": -0.1},
    {"nose": {"x": 1.2, "y": 0.3}},
    {"left_hip": {"x": 0.45, "y": -0.01}},
])
def test_pose_values_outside_unit_range_are_rejected(client, camera_capture_payload, change):
    session = _start(client)
    capture = camera_capture_payload()
    capture["pose_frames"][0].update(change)

    response = client.post(f"/range-sessions/{session['id']}/swings", json={"camera_capture": capture})
    assert response.status_code == 422
