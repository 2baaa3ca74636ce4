#!/usr/bin/env python3

from __future__ import annotations
import asyncio
import json
from contextlib import suppress
from typing import Any, Optional

import typer
from aioconsole import ainput
from rich.console import Console
from rich.table import Table

from shared.envelope import BattlerProtocolError, NotConnectedError, create_envelope
from shared.log import configure_root_logging, get_logger
from .client import BattlerClient
from .config import ClientConfig
from .core.MessageTypes import OutboundType

app = typer.Typer(help="Click Battler client CLI")
encode_app = typer.Typer(help="Print outbound command frames")
app.add_typer(encode_app, name="encode")
console = Console()
logger = get_logger(__name__)


def _config(host: Optional[str], path: Optional[str], secure: Optional[bool]) -> ClientConfig:
    config = ClientConfig.from_env()
    if host is not None:
        config.host = host
    if path is not None:
        config.path = path
    if secure is not None:
        config.secure = secure
    return config


def _parse_player_id(raw: str) -> Any:
    # The server hands out numeric ids; keep them numeric on the wire
    if raw.isascii() and raw.isdigit():
        return int(raw)
    return raw


def render_players(client: BattlerClient) -> Table:
    title = "Players" + (" (stale)" if client.stale else "")
    table = Table(title=title)
    table.add_column("Player ID")
    table.add_column("Record")
    for player_id, record in sorted(client.players.items()):
        marker = " (you)" if str(player_id) == str(client.identity) else ""
        table.add_row(f"{player_id}{marker}", json.dumps(record, sort_keys=True))
    return table


@app.command()
def endpoint(
    host: Optional[str] = typer.Option(None, help="Game server host, e.g. localhost:3030"),
    path: Optional[str] = typer.Option(None, help="Websocket path on the server"),
    secure: Optional[bool] = typer.Option(None, "--secure/--insecure", help="Use wss://"),
):
    """Print the websocket URL the client would connect to."""
    try:
        console.print(_config(host, path, secure).endpoint)
    except ValueError as e:
        raise typer.BadParameter(str(e))


@encode_app.command("heal")
def encode_heal():
    """Print the HealSelf frame."""
    console.print(create_envelope(OutboundType.HEAL_SELF.value).to_json())


@encode_app.command("attack")
def encode_attack(target: str = typer.Argument(..., help="Player id to attack")):
    """Print the AttackPlayer frame for TARGET."""
    env = create_envelope(OutboundType.ATTACK_PLAYER.value, target=_parse_player_id(target))
    console.print(env.to_json())


@app.command()
def run(
    host: Optional[str] = typer.Option(None, help="Game server host, e.g. localhost:3030"),
    path: Optional[str] = typer.Option(None, help="Websocket path on the server"),
    secure: Optional[bool] = typer.Option(None, "--secure/--insecure", help="Use wss://"),
):
    """Connect, show the player table on every update, and send actions."""
    config = _config(host, path, secure)
    if config.log_level:
        configure_root_logging(config.log_level)

    async def main_loop() -> None:
        client = BattlerClient(config)
        client.subscribe(lambda _players: console.print(render_players(client)))

        console.print(f"[bold green]Connecting[/] to {config.endpoint}")
        try:
            await client.connect()
        except BattlerProtocolError as e:
            console.print(f"[red]Could not connect[/]: {e}")
            raise typer.Exit(code=1)

        # Connect failures are already printed above
        client.on_error(lambda e: console.print(f"[red]{type(e).__name__}[/]: {e}"))

        recv_task = asyncio.create_task(client.run())
        try:
            while True:
                input_task = asyncio.ensure_future(ainput(": "))
                await asyncio.wait({input_task, recv_task}, return_when=asyncio.FIRST_COMPLETED)
                if not input_task.done():
                    input_task.cancel()
                    with suppress(asyncio.CancelledError):
                        await input_task
                    console.print("[yellow]Server closed the connection[/]")
                    break
                line = input_task.result().strip()
                if not line:
                    continue
                if line in {"/quit", "/exit"}:
                    break
                if line == "/help":
                    console.print("/heal, /attack <player>, /players, /me, /quit")
                    continue
                if line == "/players":
                    console.print(render_players(client))
                    continue
                if line == "/me":
                    console.print(f"You are {client.identity!r} ({client.phase.value}): {client.local_player!r}")
                    continue
                try:
                    if line == "/heal":
                        client.heal_self()
                        continue
                    if line.startswith("/attack "):
                        target = line[len("/attack "):].strip()
                        if not target:
                            console.print("Usage: /attack <player>")
                            continue
                        client.attack_player(_parse_player_id(target))
                        continue
                except NotConnectedError as e:
                    console.print(f"[red]{e}[/]")
                    continue
                console.print("Unknown command. /help")
        finally:
            await client.close()
            recv_task.cancel()
            with suppress(asyncio.CancelledError):
                await recv_task

    asyncio.run(main_loop())


def main() -> None:
    app()


if __name__ == "__main__":
    main()
