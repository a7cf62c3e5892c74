import pytest
from roundcaddy.services.round_preferences import (
    ROUND_MODES,
    AccessLevel,
    RoundMode,
    RoundPreferences,
    can_use_mode,
)


def test_default_preferences(client):
    response = client.get("/preferences/round")

    assert response.status_code == 200
    data = response.json()
    assert data["default_mode"] == "full_tracking"
    assert data["preferred_tees"] == "White"
    assert data["keep_screen_on"] is True


def test_save_and_reload_preferences(client):
    body = {
        "default_mode": "quick_score",
        "preferred_tees": "Blue",
        "enable_shot_reminders": False,
        "auto_advance_hole": True,
        "show_yardage_markers": True,
        "show_hazard_warnings": False,
        "enable_voice_distances": True,
        "keep_screen_on": False,
    }

    response = client.put("/preferences/round", json=body)
    assert response.status_code == 200
    assert response.json() == body

    assert client.get("/preferences/round").json() == body


def test_partial_body_fills_defaults(client):
    response = client.put("/preferences/round", json={"preferred_tees": "Red"})

    assert response.json()["preferred_tees"] == "Red"
    assert response.json()["default_mode"] == "full_tracking"


def test_unknown_mode_is_rejected(client):
    response = client.put("/preferences/round", json={"default_mode": "scramble"})
    assert response.status_code == 422


def test_round_modes(client):
    response = client.get("/round-modes")

    assert response.status_code == 200
    modes = {m["mode"]: m for m in response.json()["modes"]}
    assert set(modes) == {"quick_score", "full_tracking", "tournament"}
    assert modes["quick_score"]["features"]["gps_enabled"] is False
    assert modes["quick_score"]["features"]["putts_tracking"] is True
    assert modes["tournament"]["requires_pro"] is True
    assert modes["tournament"]["features"]["attestation"] is True
    assert modes["full_tracking"]["minimum_access_level"] == "grace_period"


@pytest.mark.parametrize("mode,level,allowed", [
    (RoundMode.QUICK_SCORE, AccessLevel.FREE, True),
    (RoundMode.FULL_TRACKING, AccessLevel.FREE, False),
    (RoundMode.FULL_TRACKING, AccessLevel.GRACE_PERIOD, True),
    (RoundMode.FULL_TRACKING, AccessLevel.TRIAL, True),
    (RoundMode.TOURNAMENT, AccessLevel.TRIAL, False),
    (RoundMode.TOURNAMENT, AccessLevel.PRO, True),
])
def test_can_use_mode(mode, level, allowed):
    assert can_use_mode(mode, level) is allowed


def test_preferences_json_ignores_unknown_keys():
    prefs = RoundPreferences.from_json({"default_mode": "tournament", "legacy_flag": True})

    assert prefs.default_mode == RoundMode.TOURNAMENT
    assert prefs.preferred_tees == "White"
    assert RoundPreferences.from_json(prefs.to_json()) == prefs


def test_every_mode_is_configured():
    assert set(ROUND_MODES) == set(RoundMode)


def test_round_modes_report_availability_for_access_level(client):
    response = client.get("/round-modes", params={"access_level": "trial"})

    assert response.status_code == 200
    available = {m["mode"]: m["available"] for m in response.json()["modes"]}
    assert available == {"quick_score": True, "full_tracking": True, "tournament": False}

    free = client.get("/round-modes", params={"access_level": "free"}).json()
    assert [m["mode"] for m in free["modes"] if m["available"]] == ["quick_score"]


def test_round_modes_without_access_level(client):
    modes = client.get("/round-modes").json()["modes"]
    assert all(m["available"] is None for m in modes)


def test_round_modes_unknown_access_level(client):
    assert client.get("/round-modes", params={"access_level": "platinum"}).status_code == 422
