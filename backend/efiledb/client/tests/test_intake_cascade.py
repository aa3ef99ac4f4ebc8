from __future__ import annotations

import asyncio

import anyio
import httpx

from efiledb.apps.work_requests.intake import IntakeMode
from efiledb.client.api import EfilingClient
from efiledb.client.cascade import CascadeLoader, IntakeCascade


def test_newer_load_supersedes_older_one():
    async def main():
        loader = CascadeLoader()
        release = asyncio.Event()

        async def slow():
            await release.wait()
            return ["old town subtowns"]

        async def fast():
            return ["new town subtowns"]

        first = asyncio.ensure_future(loader.load("subtowns", 1, slow, default="stale"))
        await asyncio.sleep(0)
        assert loader.current_key("subtowns") == 1

        second = await loader.load("subtowns", 2, fast)
        return second, await first, loader.current_key("subtowns")

    second, first, key = anyio.run(main)
    assert second == ["new town subtowns"]
    assert first == "stale"
    assert key is None


def test_gather_turns_failures_into_empty_lists():
    async def ok():
        return ({"id": 1},)

    async def failing():
        raise RuntimeError("lookup down")

    async def main():
        return await CascadeLoader().gather({"towns": ok, "divisions": failing})

    assert anyio.run(main) == {"towns": [{"id": 1}], "divisions": []}


def _reference_handler(calls):
    def handler(request):
        path = request.url.path
        params = dict(request.url.params)
        calls.append((path, params))
        if path == "/api/towns":
            return httpx.Response(200, json=[{"id": 1, "town": "Saddar"}])
        if path == "/api/complaints/getalltypes":
            return httpx.Response(200, json=[{"id": 5, "type_name": "Water Supply", "division_id": 12}])
        if path == "/api/efiling/divisions":
            return httpx.Response(200, json={"success": True, "divisions": [{"id": 12, "name": "Bulk Water"}]})
        if path == "/api/socialmediaperson":
            return httpx.Response(503, json={"detail": "unavailable"})
        if path == "/api/towns/subtowns":
            return httpx.Response(200, json=[{"id": 7, "town_id": int(params["town_id"]), "subtown": "Garden"}])
        if path == "/api/complaints/subtypes":
            return httpx.Response(200, json=[{"id": 9, "subtype_name": "Pipe burst"}])
        if path == "/api/agents":
            return httpx.Response(200, json=[{"id": 3, "name": "Asif", "role": 1}])
        return httpx.Response(404, json={"detail": "Not Found"})

    return handler


def test_division_department_cascade():
    calls = []

    async def main():
        async with EfilingClient("http://testserver", transport=httpx.MockTransport(_reference_handler(calls))) as client:
            cascade = IntakeCascade(client)
            await cascade.load_initial()
            cascade.lists["subtowns"] = [{"id": 7}]
            mode = await cascade.select_department({"id": 5, "division_id": 12})
            await cascade.select_division("12")
            return cascade, mode

    cascade, mode = anyio.run(main)
    assert mode == IntakeMode.DIVISION
    assert cascade.lists["divisions"] == [{"id": 12, "name": "Bulk Water"}]
    assert cascade.lists["social_media_people"] == []
    assert cascade.lists["subtowns"] == []
    assert cascade.lists["subtypes"] == [{"id": 9, "subtype_name": "Pipe burst"}]
    assert cascade.lists["executive_engineers"][0]["name"] == "Asif"
    assert ("/api/agents", {"role": "1", "division_id": "12", "complaint_type_id": "5"}) in calls
    assert "division_id" in [field.name for field in cascade.layout()]


def test_town_department_cascade():
    calls = []

    async def main():
        async with EfilingClient("http://testserver", transport=httpx.MockTransport(_reference_handler(calls))) as client:
            cascade = IntakeCascade(client)
            await cascade.select_department({"id": 3, "division_id": None})
            await cascade.select_town(1)
            town_lists = dict(cascade.lists)
            await cascade.select_town("")
            return town_lists, cascade

    town_lists, cascade = anyio.run(main)
    assert cascade.mode == IntakeMode.TOWN
    assert town_lists["subtowns"][0]["town_id"] == 1
    assert town_lists["executive_engineers"]
    assert ("/api/agents", {"role": "1", "town_id": "1", "complaint_type_id": "3"}) in calls
    assert cascade.lists["subtowns"] == []
    assert cascade.lists["executive_engineers"] == []
