"""Chat tester command."""

import asyncio
import sys
from typing import Optional

import click
from rich.console import Console

from voila_dashboard.chat.base import ChatEventType
from voila_dashboard.chat.session import ChatSession, function_label
from voila_dashboard.config import ChatProvider
from voila_dashboard.exceptions import TimeoutError, VoilaError

from ..utils.output import print_error, print_info, print_key_values, print_success

console = Console()

QUIT_COMMANDS = ("/quit", "/exit")


class _Printer:
    """Prints streamed chunks as they arrive."""

    def __init__(self) -> None:
        self.streamed = False

    def on_chunk(self, text: str) -> None:
        if not self.streamed:
            console.print("[bold blue]Voilà[/bold blue]> ", end="")
        self.streamed = True
        console.print(text, end="", markup=False, highlight=False)


async def _ask(session: ChatSession, printer: _Printer, text: str, timeout: float) -> bool:
    printer.streamed = False
    if not await session.send_message(text):
        print_error(session.error or "Message not sent")
        return False

    try:
        reply = await session.wait_for_reply(timeout=timeout)
    except TimeoutError as e:
        print_error(e.message)
        return False

    if reply is None:
        if printer.streamed:
            console.print()
        print_error(session.error or "No reply")
        return False

    if printer.streamed:
        console.print()
    else:
        console.print(f"[bold blue]Voilà[/bold blue]> {reply.content}", highlight=False)
    if reply.function_called:
        console.print(f"[dim]  ↳ {function_label(reply.function_called)}[/dim]")
    return True


async def _run(provider: Optional[ChatProvider], token: Optional[str], message: Optional[str], timeout: float) -> int:
    # Built inside the loop that drives it
    try:
        session = ChatSession(provider=provider, auth_token=token)
    except VoilaError as e:
        print_error(str(e))
        return 1

    return await _converse(session, message, timeout)


async def _converse(session: ChatSession, message: Optional[str], timeout: float) -> int:
    printer = _Printer()
    session.client.on(ChatEventType.CHUNK, printer.on_chunk)

    await session.connect()
    if session.error or not session.is_connected:
        print_error(f"Connection failed: {session.error or 'not connected'}")
        await session.aclose()
        return 1

    try:
        if message is not None:
            return 0 if await _ask(session, printer, message, timeout) else 1

        print_success(f"Connected to {session.provider.value}. Type /quit to leave, /clear to restart, /stats for counts.")
        while True:
            try:
                text = await asyncio.to_thread(console.input, "[bold green]Tu[/bold green]> ")
            except (EOFError, KeyboardInterrupt):
                console.print()
                break

            text = text.strip()
            if not text:
                continue
            if text in QUIT_COMMANDS:
                break
            if text == "/clear":
                session.clear_messages()
                print_info("Conversation cleared")
                continue
            if text == "/stats":
                stats = session.stats
                print_key_values(
                    {"Messages": stats.total_messages, "RAG": stats.rag_calls, "Graph": stats.graph_calls},
                    title="Chat",
                )
                continue

            await _ask(session, printer, text, timeout)
        return 0
    finally:
        await session.aclose()


@click.command("chat")
@click.option("--provider", type=click.Choice([p.value for p in ChatProvider]),
              help="Chat backend (defaults to CHAT_PROVIDER)")
@click.option("--token", envvar="VOILA_AUTH_TOKEN", help="Dashboard user token, forwarded to Pipecat")
@click.option("--message", "-m", help="Send one message, print the reply and exit")
@click.option("--timeout", type=float, default=60.0, help="Seconds to wait for each reply")
@click.pass_context
def chat(ctx: click.Context, provider: Optional[str], token: Optional[str], message: Optional[str], timeout: float):
    """Talk to the assistant from the terminal.

    \b
    Examples:
      voila chat
      voila chat --provider vapi -m "Quanto costa una visita agonistica?"
    """
    provider = provider or ctx.obj.get("chat_provider")
    chat_provider = ChatProvider(provider) if provider else None
    sys.exit(asyncio.run(_run(chat_provider, token, message, timeout)))
