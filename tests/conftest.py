import pytest

from bots import AgentPersonality, AgentPlanet, AgentPlayer, Difficulty, Strategy
from resources import Resources
from world import Coordinates, create_home_planet


@pytest.fixture
def home_planet():
    return create_home_planet("player-1", Coordinates(1, 1, 1), now=0.0, planet_id="home")


@pytest.fixture
def make_agent():
    def _make(
        difficulty=Difficulty.NORMAL,
        ships=None,
        buildings=None,
        resources=None,
        planets=1,
        last_action=0,
        **personality,
    ) -> AgentPlayer:
        agent_planets = [
            AgentPlanet(
                id=f"p{i}",
                name=f"Planet {i}",
                coordinates=Coordinates(1, 100 + i * 50, 3),
                buildings=dict(buildings or {}),
                ships=dict(ships or {}),
                resources=resources.copy() if resources is not None else Resources(),
            )
            for i in range(planets)
        ]
        return AgentPlayer(
            id="ai_test",
            name="TestAgent",
            difficulty=difficulty,
            strategy=Strategy.BALANCED,
            personality=AgentPersonality(**personality),
            planets=agent_planets,
            last_action=last_action,
        )

    return _make
