#!/usr/bin/env python3
from __future__ import annotations

import asyncio
import os
import time
import traceback
from contextlib import asynccontextmanager
from typing import Tuple, Union

from fastapi import FastAPI, Query, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

import economy
from achievements import summarize
from config import SIM_CONFIG
from errors import FieldCapacityError, UnknownKindError
from world import (
    World,
    advance_world,
    create_world,
    evaluate_achievements,
    Planet,
    Player,
    planet_state,
    player_state,
    purchase_building,
    purchase_defense,
    purchase_research,
    purchase_ships,
    step_agents,
    world_state,
)

TICK_DELAY: float = float(SIM_CONFIG.get("tick_delay", 1.0))
ACHIEVEMENT_INTERVAL: float = float(SIM_CONFIG.get("achievement_interval", 5.0))
AGENT_INTERVAL: float = float(SIM_CONFIG.get("agent_interval", 5.0))
SEED = SIM_CONFIG.get("seed")

_simulation_task: asyncio.Task | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    await start_simulation()
    try:
        yield
    finally:
        if _simulation_task:
            _simulation_task.cancel()
            await asyncio.gather(_simulation_task, return_exceptions=True)


app = FastAPI(lifespan=lifespan)

print(">>> Starting economy_sim with TICK_DELAY =", TICK_DELAY)

world: World = create_world(seed=SEED)
world_lock = asyncio.Lock()


@app.get("/")
async def index():
    """Lightweight health endpoint for the backend."""
    return JSONResponse({"status": "ok", "service": "economy-backend", "tick": world.tick})


@app.get("/planets")
async def planets_endpoint():
    async with world_lock:
        data = [planet_state(p) for p in world.planets.values()]
    return JSONResponse(data)


@app.get("/planets/{planet_id}")
async def planet_detail(planet_id: str):
    async with world_lock:
        planet = world.planets.get(planet_id)
        if planet is None:
            return JSONResponse({"error": "not found"}, status_code=404)
        data = planet_state(planet)
    return JSONResponse(data)


def _owned_planet(planet_id: str) -> Union[Tuple[Planet, Player], JSONResponse]:
    """Look up a planet and its owner, settled to now. Call with the world lock held."""
    planet = world.planets.get(planet_id)
    if planet is None:
        return JSONResponse({"error": "not found"}, status_code=404)
    player = world.players.get(planet.owner_id)
    if player is None:
        return JSONResponse({"error": "planet has no owner"}, status_code=404)
    # bring the stock up to date before charging at the old production rates
    economy.settle(planet, time.time(), world.speed)
    return planet, player


@app.post("/planets/{planet_id}/buildings/{kind}")
async def upgrade_endpoint(planet_id: str, kind: str):
    """Buy one level of ``kind`` on the planet, paying from its own stock."""
    async with world_lock:
        found = _owned_planet(planet_id)
        if isinstance(found, JSONResponse):
            return found
        planet, player = found
        try:
            bought = purchase_building(player, planet, kind)
        except UnknownKindError as exc:
            return JSONResponse({"error": str(exc)}, status_code=400)
        except FieldCapacityError as exc:
            return JSONResponse({"error": str(exc)}, status_code=409)
        if not bought:
            return JSONResponse({"error": "insufficient resources"}, status_code=402)

        world.log_event(f"t={world.tick}: {player.name} upgraded {kind} to {planet.buildings[kind]}")
        data = planet_state(planet)
    return JSONResponse(data)


@app.post("/planets/{planet_id}/ships/{kind}")
async def ships_endpoint(planet_id: str, kind: str, count: int = Query(1, ge=1)):
    """Build ``count`` ships of ``kind``; the fleet belongs to the planet's owner."""
    async with world_lock:
        found = _owned_planet(planet_id)
        if isinstance(found, JSONResponse):
            return found
        planet, player = found
        try:
            bought = purchase_ships(player, planet, kind, count)
        except UnknownKindError as exc:
            return JSONResponse({"error": str(exc)}, status_code=400)
        if not bought:
            return JSONResponse({"error": "insufficient resources"}, status_code=402)

        world.log_event(f"t={world.tick}: {player.name} built {count} {kind}")
        data = {"planet": planet_state(planet), "player": player_state(player)}
    return JSONResponse(data)


@app.post("/planets/{planet_id}/defense/{kind}")
async def defense_endpoint(planet_id: str, kind: str, count: int = Query(1, ge=1)):
    async with world_lock:
        found = _owned_planet(planet_id)
        if isinstance(found, JSONResponse):
            return found
        planet, player = found
        try:
            bought = purchase_defense(planet, kind, count)
        except UnknownKindError as exc:
            return JSONResponse({"error": str(exc)}, status_code=400)
        if not bought:
            return JSONResponse({"error": "insufficient resources"}, status_code=402)

        world.log_event(f"t={world.tick}: {player.name} placed {count} {kind} on {planet.name}")
        data = planet_state(planet)
    return JSONResponse(data)


@app.post("/planets/{planet_id}/research/{kind}")
async def research_endpoint(planet_id: str, kind: str):
    """Research the next level of ``kind``, paid from this planet's stock."""
    async with world_lock:
        found = _owned_planet(planet_id)
        if isinstance(found, JSONResponse):
            return found
        planet, player = found
        try:
            bought = purchase_research(player, planet, kind)
        except UnknownKindError as exc:
            return JSONResponse({"error": str(exc)}, status_code=400)
        if not bought:
            return JSONResponse({"error": "insufficient resources"}, status_code=402)

        world.log_event(f"t={world.tick}: {player.name} researched {kind} to {player.research[kind]}")
        data = {"planet": planet_state(planet), "player": player_state(player)}
    return JSONResponse(data)


@app.get("/players/{player_id}")
async def player_detail(player_id: str):
    async with world_lock:
        player = world.players.get(player_id)
        if player is None:
            return JSONResponse({"error": "not found"}, status_code=404)
        data = player_state(player)
    return JSONResponse(data)


@app.get("/agents")
async def agents_endpoint():
    async with world_lock:
        data = world.registry.debug_state()
    return JSONResponse(data)


@app.get("/achievements")
async def achievements_endpoint():
    async with world_lock:
        data = {
            player.id: summarize(player.achievements, player.stats)
            for player in world.players.values()
        }
    return JSONResponse(data)


@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    print("WS: incoming connection")
    await ws.accept()
    print("WS: client accepted")
    try:
        while True:
            async with world_lock:
                payload = {
                    "tick_delay": TICK_DELAY,
                    "tick_delay_ms": int(TICK_DELAY * 1000),
                    **world_state(world),
                }
            await ws.send_json(payload)
            await asyncio.sleep(TICK_DELAY)
    except WebSocketDisconnect:
        print("WS: client disconnected")
        return
    except Exception:
        print("WS: unexpected error in websocket handler:")
        traceback.print_exc()
        return


async def start_simulation() -> None:
    global _simulation_task
    print(">>> startup: simulation task starting")

    async def run():
        last_achievements = time.monotonic()
        last_agents = time.monotonic()
        while True:
            try:
                async with world_lock:
                    advance_world(world, time.time())

                    mono = time.monotonic()
                    if mono - last_achievements >= ACHIEVEMENT_INTERVAL:
                        last_achievements = mono
                        for player_id, unlocked in evaluate_achievements(world).items():
                            names = ", ".join(a.name for a in unlocked)
                            print(f"SIM: player {player_id} unlocked {names}")
                    if mono - last_agents >= AGENT_INTERVAL:
                        last_agents = mono
                        step_agents(world)

                if world.tick % 20 == 0:
                    print(f"SIM: tick {world.tick}")
                await asyncio.sleep(TICK_DELAY)
            except Exception:
                print("SIM: error in background loop:")
                traceback.print_exc()
                await asyncio.sleep(1.0)

    _simulation_task = asyncio.create_task(run())


if __name__ == "__main__":
    import uvicorn

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", SIM_CONFIG.get("port", 8000)))
    reload_flag = os.environ.get("RELOAD", "").lower() in {"1", "true", "yes", "on"}
    uvicorn.run("main:app", host=host, port=port, reload=reload_flag)
