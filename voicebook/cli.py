"""
voicebook/cli.py

Console front end. Typed lines stand in for what the microphone hears;
``:`` commands stand in for buttons.

Run with:  voicebook [--user ID] [--mobile] [--deep-link '#/post/abc']
"""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from voicebook import __version__
from voicebook.app import VoicebookApp
from voicebook.config.loader import config_to_json, get_api_key, load_config
from voicebook.intents.resolver import GeminiIntentResolver
from voicebook.logging_setup import setup_logging
from voicebook.models import User
from voicebook.navigation.stack import ViewFrame
from voicebook.presence.chat import ChatWindowSet, channel_id
from voicebook.presence.feed import (
    ConversationSummary,
    InMemoryConversationFeed,
    LastMessage,
    WebSocketConversationFeed,
)
from voicebook.voice.console import ConsoleMicrophone
from voicebook.voice.state import VoiceState

console = Console()

MOBILE_WIDTH = 390
DESKTOP_WIDTH = 1280

HELP = """[bold]Typed lines[/] are heard by the microphone ("hey voicebook", then a command).
  :mic               toggle command listening
  :text <command>    type a command instead of speaking it
  :back              go back one screen
  :chats             show chat windows
  :open <peer>       open a chat window
  :close <peer>      close a chat window
  :min <peer>        minimize / restore a chat window
  :msg <peer> <text> simulate an inbound message (local feed only)
  :state             dump the current state
  :config            dump the loaded configuration
  :quit              sign out and exit"""


def _print_frame(frame: ViewFrame) -> None:
    props = f" [dim]{json.dumps(frame.props, ensure_ascii=False, default=str)}[/]" if frame.props else ""
    console.print(f"[bold cyan]Screen:[/] {frame.view.value}{props}")


def _print_chats(chats: ChatWindowSet, user_id: str) -> None:
    if not chats.open_peers:
        console.print("[dim]No chat windows open[/]")
        return
    table = Table(title="Chat windows")
    table.add_column("Peer")
    table.add_column("State")
    table.add_column("Unread", justify="right")
    for peer in chats.open_peers:
        unread = chats.unread_counts.get(channel_id(user_id, peer.id), 0)
        table.add_row(peer.name or peer.id, "minimized" if peer.id in chats.minimized else "open", str(unread))
    console.print(table)


class LocalInbox:
    """Conversation list published through the in-memory feed by ``:msg``."""

    def __init__(self, feed: InMemoryConversationFeed, user: User):
        self._feed = feed
        self._user = user
        self._rows: dict[str, ConversationSummary] = {}
        self._next_id = 1

    def receive(self, peer_id: str, text: str) -> None:
        previous = self._rows.get(peer_id)
        message = LastMessage(id=f"m{self._next_id}", sender_id=peer_id, text=text)
        self._next_id += 1
        unread = (previous.unread_count if previous else 0) + 1
        self._rows[peer_id] = ConversationSummary(User(peer_id, name=peer_id), message, unread)
        self._feed.publish(self._user.id, list(self._rows.values()))


async def run(args: argparse.Namespace) -> int:
    config = load_config(Path(args.config) if args.config else None)
    setup_logging(config.logging)

    api_key = get_api_key()
    if not api_key:
        console.print("[red]GOOGLE_API_KEY not set. The Gemini intent resolver needs it.[/]")
        return 1

    if config.presence.enabled and config.presence.server_url:
        feed = WebSocketConversationFeed(config.presence.server_url, config.presence.max_backoff)
    else:
        feed = InMemoryConversationFeed()

    mic = ConsoleMicrophone()
    app = VoicebookApp(
        config,
        audio_factory=mic.create_session,
        resolver=GeminiIntentResolver(api_key, config.resolver),
        feed=feed,
    )

    app.voice.add_status_listener(lambda text: console.print(f"[magenta]VoiceBook:[/] {text}"))
    app.voice.add_state_listener(
        lambda old, new: console.print(f"[dim]{old.value} -> {new.value}[/]")
    )
    app.navigation.add_listener(_print_frame)
    app.chat.add_listener(
        lambda chats: console.print(
            f"[dim]chats: {', '.join(chats.open_ids) or 'none'}[/]"
        )
    )
    app.dispatcher.subscribe_unrouted(
        lambda command, intent: console.print(
            f"[yellow]No screen here handles {intent.name}[/] [dim]{intent.slots}[/]"
        )
    )

    console.print(
        Panel(
            f"[bold cyan]VOICEBOOK[/] {__version__}. Voice control for your feed\n"
            "[dim]Type :help for commands[/]",
            border_style="cyan",
        )
    )

    user = User(args.user, name=args.name or args.user, username=args.user)
    app.set_deep_link(args.deep_link)
    app.chat.set_viewport_width(MOBILE_WIDTH if args.mobile else DESKTOP_WIDTH)
    app.sign_in(user)
    inbox = LocalInbox(feed, user) if isinstance(feed, InMemoryConversationFeed) else None

    loop = asyncio.get_running_loop()
    try:
        while True:
            try:
                line = await loop.run_in_executor(None, lambda: input("> "))
            except EOFError:
                break
            line = line.strip()
            if not line:
                continue
            if not line.startswith(":"):
                if not mic.hear(line):
                    state = app.voice.state
                    hint = "busy" if state is VoiceState.PROCESSING else "not listening"
                    console.print(f"[dim]({hint}; use :mic or :text)[/]")
                continue

            cmd, _, rest = line[1:].partition(" ")
            rest = rest.strip()
            if cmd in ("quit", "q", "exit"):
                break
            elif cmd == "help":
                console.print(HELP)
            elif cmd == "mic":
                app.voice.toggle_active()
            elif cmd == "text":
                app.voice.submit_text(rest)
            elif cmd == "back":
                if not app.navigation.pop():
                    console.print("[dim]Already at the first screen[/]")
            elif cmd == "chats":
                _print_chats(app.chat.snapshot(), user.id)
            elif cmd == "open" and rest:
                await app.chat.open(User(rest, name=rest))
            elif cmd == "close" and rest:
                app.chat.close(rest)
            elif cmd == "min" and rest:
                app.chat.toggle_minimize(rest)
            elif cmd == "msg" and rest:
                peer_id, _, text = rest.partition(" ")
                if inbox is None:
                    console.print("[yellow]:msg only works with the local conversation feed[/]")
                else:
                    inbox.receive(peer_id, text or "hi")
            elif cmd == "state":
                console.print_json(json.dumps(app.snapshot().to_dict(), default=str))
            elif cmd == "config":
                console.print_json(config_to_json(config))
            else:
                console.print(f"[yellow]Unknown command:[/] {line}")
            # Let auto-opens and dispatches scheduled by this line run.
            await asyncio.sleep(0)
    finally:
        app.sign_out()
        console.print("[green]Signed out. Bye.[/]")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="VoiceBook console")
    parser.add_argument("--config", help="Path to config.yaml")
    parser.add_argument("--user", default="me", help="User id to sign in as")
    parser.add_argument("--name", help="Display name (defaults to the user id)")
    parser.add_argument("--mobile", action="store_true", help="Use the mobile chat window limits")
    parser.add_argument("--deep-link", help="Start-up location fragment, e.g. '#/post/abc'")
    args = parser.parse_args()
    try:
        raise SystemExit(asyncio.run(run(args)))
    except KeyboardInterrupt:
        console.print("\nBye.")


if __name__ == "__main__":
    main()
