import pytest
from fastapi.testclient import TestClient

import main
from resources import Resources
from world import create_world


@pytest.fixture
def client(monkeypatch):
    # no context manager: the lifespan background loop stays off
    monkeypatch.setattr(main, "world", create_world(agent_count=2, seed=3))
    return TestClient(main.app)


def _home_id():
    player = next(iter(main.world.players.values()))
    return player.home_planet_id


def test_health(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_list_and_get_planets(client):
    planets = client.get("/planets").json()
    assert len(planets) == 1
    assert planets[0]["coordinates"] == "1:1:1"

    resp = client.get(f"/planets/{_home_id()}")
    assert resp.status_code == 200
    assert resp.json()["fields"] == {"used": 7, "max": 163, "free": 156}

    assert client.get("/planets/nope").status_code == 404


def test_upgrade_building(client):
    resp = client.post(f"/planets/{_home_id()}/buildings/metal_mine")
    assert resp.status_code == 200
    body = resp.json()
    assert body["buildings"]["metal_mine"] == 2
    assert body["rates"]["metal"] == 33


def test_upgrade_error_statuses(client):
    home = _home_id()
    assert client.post(f"/planets/{home}/buildings/moon_base").status_code == 400
    assert client.post("/planets/nope/buildings/metal_mine").status_code == 404
    assert client.post(f"/planets/{home}/buildings/space_dock").status_code == 402

    planet = main.world.planets[home]
    planet.fields.used = planet.fields.max
    assert client.post(f"/planets/{home}/buildings/metal_mine").status_code == 409
    assert planet.buildings["metal_mine"] == 1


def test_agents_and_achievements(client):
    agents = client.get("/agents").json()
    assert len(agents) == 2

    achievements = client.get("/achievements").json()
    player = next(iter(main.world.players.values()))
    assert len(achievements[player.id]) == 17
    assert all(not row["unlocked"] for row in achievements[player.id])


def _fund_home(amount=100_000):
    planet = main.world.planets[_home_id()]
    planet.resources = Resources(metal=amount, crystal=amount, deuterium=amount)
    return planet


def test_build_ships(client):
    _fund_home()
    resp = client.post(f"/planets/{_home_id()}/ships/light_fighter", params={"count": 3})
    assert resp.status_code == 200
    body = resp.json()
    assert body["player"]["ships"] == {"light_fighter": 3}
    assert body["player"]["stats"]["ships_built"] == 3
    assert body["planet"]["resources"]["metal"] >= 100_000 - 9000
    assert body["planet"]["resources"]["metal"] < 100_000


def test_build_defense(client):
    planet = _fund_home()
    resp = client.post(f"/planets/{_home_id()}/defense/rocket_launcher", params={"count": 2})
    assert resp.status_code == 200
    assert resp.json()["defense"]["rocket_launcher"] == 2
    assert planet.defense["rocket_launcher"] == 2


def test_research(client):
    _fund_home()
    home = _home_id()
    assert client.post(f"/planets/{home}/research/energy_tech").status_code == 200
    resp = client.post(f"/planets/{home}/research/energy_tech")
    assert resp.status_code == 200
    assert resp.json()["player"]["research"]["energy_tech"] == 2
    assert any("researched energy_tech to 2" in e for e in main.world.events)


@pytest.mark.parametrize(
    "category, kind",
    [("ships", "light_fighter"), ("defense", "rocket_launcher"), ("research", "energy_tech")],
)
def test_purchases_beyond_the_starting_stock_are_refused(client, category, kind):
    home = _home_id()
    before = main.world.planets[home].resources.copy()
    assert client.post(f"/planets/{home}/{category}/{kind}").status_code == 402
    after = main.world.planets[home].resources
    # settling may add a few units, but nothing was charged
    assert after.metal >= before.metal
    assert after.crystal >= before.crystal


@pytest.mark.parametrize("category", ["ships", "defense", "research"])
def test_purchase_error_statuses(client, category):
    _fund_home()
    assert client.post(f"/planets/{_home_id()}/{category}/warbird").status_code == 400
    assert client.post(f"/planets/nope/{category}/light_fighter").status_code == 404


def test_ship_count_must_be_positive(client):
    _fund_home()
    resp = client.post(f"/planets/{_home_id()}/ships/light_fighter", params={"count": 0})
    assert resp.status_code == 422
    player = next(iter(main.world.players.values()))
    assert player.ships == {}


def test_player_detail(client):
    player = next(iter(main.world.players.values()))
    resp = client.get(f"/players/{player.id}")
    assert resp.status_code == 200
    body = resp.json()
    assert body["planet_ids"] == [_home_id()]
    assert body["ships"] == {}
    assert body["research"] == {}
    assert len(body["achievements"]) == 17

    assert client.get("/players/nope").status_code == 404
