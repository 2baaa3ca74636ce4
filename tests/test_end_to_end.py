import asyncio
import json

import pytest
import websockets

from client.client import BattlerClient
from client.config import ClientConfig
from client.core.MessageTypes import ConnectionPhase


async def wait_for(predicate, timeout=2.0):
    async def poll():
        while not predicate():
            await asyncio.sleep(0.01)
    await asyncio.wait_for(poll(), timeout)


@pytest.mark.asyncio
async def test_client_against_scripted_game_server():
    received = []

    async def game_server(ws):
        await ws.send(json.dumps(0))
        await ws.send(json.dumps({"0": {"health": 100}, "1": {"health": 100}}))
        await ws.send("definitely not json")
        await ws.send(json.dumps({"type": "PlayerJoined", "id": 2}))

        command = json.loads(await ws.recv())
        received.append(command)
        await ws.send(json.dumps({
            "type": "WorldUpdate",
            "players": {"0": {"health": 100}, "1": {"health": 90}},
        }))
        await ws.close()

    async with websockets.serve(game_server, "127.0.0.1", 0) as server:
        port = list(server.sockets)[0].getsockname()[1]
        client = BattlerClient(ClientConfig(host=f"127.0.0.1:{port}"))
        errors = []
        client.on_error(errors.append)

        await client.connect()
        recv_task = asyncio.create_task(client.run())

        await wait_for(lambda: client.phase is ConnectionPhase.SYNCED)
        assert client.identity == 0
        assert client.local_player == {"health": 100}

        client.attack_player(1)
        await asyncio.wait_for(recv_task, 2.0)

    assert received == [{"type": "AttackPlayer", "target": 1}]
    assert client.players == {"0": {"health": 100}, "1": {"health": 90}}
    assert client.connected is False
    assert client.stale is True
    assert len(errors) == 1
