"""Tests for the local control API."""
import pytest
from fastapi.testclient import TestClient

from control_server import create_app
from control_state import (
    BeginSelection,
    Clear,
    CommandBus,
    SetBan,
    SetPicks,
    SharedControlState,
    Terminate,
    ToggleAutoAccept,
    ToggleRuneSwap,
)


@pytest.fixture
def bus():
    return CommandBus()


@pytest.fixture
def api(bus, plan, catalog):
    control = SharedControlState(plan)
    return TestClient(create_app(bus, control, catalog))


def test_health_and_state(api):
    r = api.get("/health")
    assert r.status_code == 200
    assert r.json()["champions"] == 8

    st = api.get("/state").json()["state"]
    assert st["ban"]["name"] == "Teemo"
    assert st["auto_accept"] is True


def test_champion_names(api):
    names = api.get("/champions").json()["names"]
    assert "Kog'Maw" in names
    assert names == sorted(names)


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/selection/begin", BeginSelection()),
        ("/plan/clear", Clear()),
        ("/toggle/auto-accept", ToggleAutoAccept()),
        ("/toggle/rune-swap", ToggleRuneSwap()),
        ("/terminate", Terminate()),
    ],
)
def test_routes_only_queue_commands(api, bus, plan, path, expected):
    r = api.post(path)
    assert r.status_code == 200
    assert r.json()["queued"] == type(expected).__name__
    assert bus.drain() == [expected]
    # nothing is applied until the loop drains the bus
    assert plan.ban.name == "Teemo"


def test_plan_ban_and_picks(api, bus, catalog):
    assert api.post("/plan/ban", json={"champion": "kog maw"}).status_code == 200
    assert api.post("/plan/ban", json={"champion": ""}).status_code == 200
    assert api.post("/plan/picks", json={"champions": ["lux", "Dr. Mundo"]}).status_code == 200
    assert bus.drain() == [
        SetBan(catalog.resolve("Kog'Maw")),
        SetBan(None),
        SetPicks((catalog.resolve("Lux"), catalog.resolve("Dr. Mundo"))),
    ]


def test_unknown_champion_returns_suggestions(api, bus):
    r = api.post("/plan/picks", json={"champions": ["Ahri", "Luxx"]})
    assert r.status_code == 422
    detail = r.json()["detail"]
    assert detail["name"] == "Luxx"
    assert "Lux" in detail["suggestions"]
    assert bus.drain() == []


def test_empty_picks_rejected(api, bus):
    assert api.post("/plan/picks", json={"champions": [" "]}).status_code == 422
    assert bus.drain() == []


def test_token_is_required_when_configured(bus, plan, catalog):
    api = TestClient(create_app(bus, SharedControlState(plan), catalog, token="abc"))
    assert api.get("/health").status_code == 200
    assert api.get("/state").status_code == 401
    assert api.post("/terminate", headers={"X-AUTOPILOT-TOKEN": "wrong"}).status_code == 401
    assert bus.drain() == []
    assert api.post("/terminate", headers={"X-AUTOPILOT-TOKEN": "abc"}).status_code == 200
    assert bus.terminate_requested.is_set()
