import asyncio
import sys

from rich.console import Console
from rich.markdown import Markdown

from case_chat.exception.custom_exception import CaseChatException
from case_chat.src.document_ingestion.data_ingestion import generate_session_id
from orchestrator.orchestrator_manager import service_manager

console = Console()


async def chat_loop(session_id: str) -> None:
    services = service_manager.get_services()
    console.print(f"[green]Chatbot ready.[/green] session_id=[bold]{session_id}[/bold]\n")

    while True:
        user_input = console.input("[bold magenta]You:[/bold magenta] ").strip()

        if user_input.lower() in ["exit", "quit", "bye"]:
            console.print("[yellow]Exiting chat. Goodbye![/yellow]")
            break
        if not user_input:
            continue

        try:
            turn = await services.conversation.respond(
                session_id, user_input, timeout_seconds=services.config.chat.request_timeout_seconds
            )
        except CaseChatException as e:
            console.print(f"[red]Chat failed:[/red] {e}")
            continue

        console.print("\n[bold green]Assistant:[/bold green]")
        console.print(Markdown(turn.answer if turn.answer else "`<no content>`"))
        console.print("\n" + "-" * 60 + "\n")


if __name__ == "__main__":
    # resume a session by passing its id, otherwise start a new one
    sid = sys.argv[1] if len(sys.argv) > 1 else generate_session_id()
    console.print("[bold cyan]Initializing services...[/bold cyan]")
    asyncio.run(chat_loop(sid))
