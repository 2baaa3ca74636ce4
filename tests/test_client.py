import json

import pytest
import websockets

from client.core.MessageTypes import ConnectionPhase
from shared.envelope import DecodeFailure, NotConnectedError, ProtocolViolation, TransportError

SNAPSHOT = '{"u1":{"hp":10},"u2":{"hp":10}}'
UPDATE = '{"type":"WorldUpdate","players":{"u1":{"hp":7},"u2":{"hp":10}}}'


async def synced(client, dummy_ws):
    await client.connect()
    for frame in ('"u1"', SNAPSHOT, UPDATE):
        client.handle_frame(frame)
    return client


def test_state_is_readable_before_connecting(client):
    assert client.players == {}
    assert client.identity is None
    assert client.connected is False
    assert client.phase is ConnectionPhase.DISCONNECTED
    assert client.local_player is None


@pytest.mark.asyncio
async def test_scenario_bootstrap_then_world_update(client, dummy_ws):
    await client.connect()
    assert client.connected is True
    assert client.phase is ConnectionPhase.AWAITING_IDENTITY

    dummy_ws.feed('"u1"', SNAPSHOT, UPDATE)
    dummy_ws.end()
    await client.run()

    # run() returning means the socket closed; the mirror stays readable
    assert client.players == {"u1": {"hp": 7}, "u2": {"hp": 10}}
    assert client.stale is True
    assert client.last_error is None


@pytest.mark.asyncio
async def test_scenario_final_state_while_connected(client, dummy_ws):
    await synced(client, dummy_ws)
    assert client.identity == "u1"
    assert client.phase is ConnectionPhase.SYNCED
    assert client.players == {"u1": {"hp": 7}, "u2": {"hp": 10}}
    assert client.local_player == {"hp": 7}


@pytest.mark.asyncio
async def test_scenario_attack_sends_one_frame_and_leaves_state(client, dummy_ws):
    await synced(client, dummy_ws)
    before = client.players

    client.attack_player("u2")
    await client.transport.drain()

    assert [json.loads(m) for m in dummy_ws.sent_messages] == [{"type": "AttackPlayer", "target": "u2"}]
    assert client.players == before

    client.handle_frame('{"type":"WorldUpdate","players":{"u1":{"hp":7},"u2":{"hp":4}}}')
    assert client.players["u2"] == {"hp": 4}


@pytest.mark.asyncio
async def test_scenario_player_died_is_a_no_op(client, dummy_ws):
    await synced(client, dummy_ws)
    errors = []
    client.on_error(errors.append)
    before = client.players

    client.handle_frame('{"type":"PlayerDied","id":"u2"}')

    assert client.players == before
    assert errors == []


@pytest.mark.asyncio
@pytest.mark.parametrize("bad_at", [0, 1, 2, 3])
async def test_scenario_garbage_frame_is_reported_and_skipped(client, dummy_ws, bad_at):
    errors = []
    client.on_error(errors.append)
    frames = ['"u1"', SNAPSHOT, UPDATE]
    frames.insert(bad_at, "{{{ not json")

    await client.connect()
    for frame in frames:
        client.handle_frame(frame)

    assert len(errors) == 1
    assert isinstance(errors[0], DecodeFailure)
    assert client.identity == "u1"
    assert client.phase is ConnectionPhase.SYNCED
    assert client.players == {"u1": {"hp": 7}, "u2": {"hp": 10}}
    assert client.connected is True


@pytest.mark.asyncio
async def test_unknown_type_never_mutates_or_reports(client, dummy_ws):
    await synced(client, dummy_ws)
    errors = []
    client.on_error(errors.append)

    client.handle_frame('{"type":"Leaderboard","top":["u1"]}')

    assert client.players == {"u1": {"hp": 7}, "u2": {"hp": 10}}
    assert errors == []
    assert client.last_error is None


@pytest.mark.asyncio
async def test_typed_envelope_before_sync_is_reported_and_halts_bootstrap(client, dummy_ws):
    errors = []
    client.on_error(errors.append)
    await client.connect()

    client.handle_frame(UPDATE)
    client.handle_frame('"u1"')

    assert [type(e) for e in errors] == [ProtocolViolation, ProtocolViolation]
    assert errors[0].phase == ConnectionPhase.AWAITING_IDENTITY.value
    assert client.identity is None
    assert client.players == {}


@pytest.mark.asyncio
async def test_untyped_frame_after_sync_is_reported_without_mutation(client, dummy_ws):
    await synced(client, dummy_ws)
    client.handle_frame('{"u1":{"hp":1}}')

    assert isinstance(client.last_error, ProtocolViolation)
    assert client.last_error.phase == ConnectionPhase.SYNCED.value
    assert client.players["u1"] == {"hp": 7}

    # still synced, later updates apply
    client.handle_frame('{"type":"WorldUpdate","players":{"u1":{"hp":1}}}')
    assert client.players == {"u1": {"hp": 1}}


@pytest.mark.asyncio
async def test_close_clears_identity_and_flags_state_stale(client, dummy_ws):
    await synced(client, dummy_ws)
    await client.close()

    assert client.connected is False
    assert client.identity is None
    assert client.phase is ConnectionPhase.DISCONNECTED
    assert client.stale is True
    assert client.players == {"u1": {"hp": 7}, "u2": {"hp": 10}}


@pytest.mark.asyncio
async def test_actions_while_disconnected_raise(client, dummy_ws):
    with pytest.raises(NotConnectedError):
        client.heal_self()

    await synced(client, dummy_ws)
    await client.close()
    with pytest.raises(NotConnectedError):
        client.attack_player("u2")
    assert dummy_ws.sent_messages == []


@pytest.mark.asyncio
async def test_frame_while_disconnected_is_reported(client):
    client.handle_frame('"u1"')
    assert isinstance(client.last_error, ProtocolViolation)
    assert client.identity is None


@pytest.mark.asyncio
async def test_subscribers_see_snapshot_and_updates(client, dummy_ws):
    seen = []
    client.subscribe(seen.append)
    await synced(client, dummy_ws)

    assert seen == [
        {"u1": {"hp": 10}, "u2": {"hp": 10}},
        {"u1": {"hp": 7}, "u2": {"hp": 10}},
    ]


@pytest.mark.asyncio
async def test_async_context_manager_closes(client, dummy_ws):
    async with client:
        assert client.connected is True
    assert client.connected is False
    assert dummy_ws.closed is True


@pytest.mark.asyncio
async def test_dropped_connection_is_reported_and_resets_session(client, dummy_ws):
    errors = []
    client.on_error(errors.append)
    await client.connect()
    dummy_ws.feed('"u1"', SNAPSHOT)
    dummy_ws.drop(websockets.exceptions.ConnectionClosedError(None, None))

    await client.run()

    assert [type(e) for e in errors] == [TransportError]
    assert isinstance(client.last_error, TransportError)
    assert client.connected is False
    assert client.identity is None
    assert client.phase is ConnectionPhase.DISCONNECTED
    assert client.stale is True
    assert client.players == {"u1": {"hp": 10}, "u2": {"hp": 10}}


@pytest.mark.asyncio
async def test_exposed_records_cannot_alter_the_mirror(client, dummy_ws):
    seen = []
    client.subscribe(lambda players: seen.append(players))
    await synced(client, dummy_ws)

    client.players["u1"]["hp"] = 0
    client.local_player["hp"] = 0
    seen[-1]["u2"]["hp"] = 0

    assert client.players == {"u1": {"hp": 7}, "u2": {"hp": 10}}
    assert client.local_player == {"hp": 7}


@pytest.mark.asyncio
async def test_percent_signs_in_ids_do_not_break_logging(client, dummy_ws):
    await client.connect()
    client.handle_frame('"u%d"')
    client.handle_frame('{"u%d":{"hp":1}}')

    assert client.last_error is None
    assert client.phase is ConnectionPhase.SYNCED
    assert client.local_player == {"hp": 1}
