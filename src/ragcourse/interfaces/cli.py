"""Command-line interface for the RAG course project.

Commands:
- ask: Answer one question from the knowledge base
- chat: Interactive question-answering loop with conversation memory
- load: Load the knowledge base (requires the rag profile)
- info: Show the resolved configuration
"""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ragcourse.config.loader import get_default_config_path, load_config
from ragcourse.config.schema import AppConfig, ConfigError
from ragcourse.config.startup import resolve_startup
from ragcourse.core.conversation import ConversationMemory
from ragcourse.observability.logging import configure_from_config, get_logger
from ragcourse.pipelines.ingestion import IngestionError, LoadReport
from ragcourse.pipelines.query import QueryError
from ragcourse.providers.base import ProviderError
from ragcourse.service.runtime import Runtime, build_runtime
from ragcourse.storage.base import StorageError

app = typer.Typer(
    name="ragcourse",
    help="Retrieval-augmented question answering over a small knowledge base",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)

EXIT_WORDS = {"exit", "quit"}

ConfigOption = typer.Option(None, "--config", "-c", help="Config file path")
ProfileOption = typer.Option(None, "--profile", "-p", help="Activate a profile (repeatable), e.g. rag, networked")
EnvFileOption = typer.Option(None, "--env-file", help=".env file with API keys")


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question to answer"),
    stream: bool = typer.Option(False, "--stream", "-s", help="Print the answer as it is generated"),
    show_sources: bool = typer.Option(False, "--sources", help="Show the retrieved chunks"),
    config_file: Optional[Path] = ConfigOption,
    profile: Optional[list[str]] = ProfileOption,
    env_file: Optional[Path] = EnvFileOption,
):
    """Answer a single question using the knowledge base."""
    asyncio.run(_ask_async(question, stream, show_sources, config_file, profile, env_file))


async def _ask_async(
    question: str,
    stream: bool,
    show_sources: bool,
    config_file: Optional[Path],
    profile: Optional[list[str]],
    env_file: Optional[Path],
):
    """Async implementation of ask command."""
    config = _load_config(config_file, profile, env_file)
    runtime = await _start_runtime(config)

    try:
        await _load_knowledge_base(runtime)

        if show_sources:
            results = await runtime.rag_service.retrieve(question)
            _print_sources(results)

        if stream:
            async for delta in runtime.rag_service.stream(question):
                console.print(delta, end="", markup=False, highlight=False)
            console.print()
        else:
            answer = await runtime.rag_service.query(question)
            console.print(answer, markup=False, highlight=False)

    except (IngestionError, QueryError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        logger.error("ask_error", error=str(e))
        raise typer.Exit(1)
    finally:
        await runtime.close()


@app.command()
def chat(
    config_file: Optional[Path] = ConfigOption,
    profile: Optional[list[str]] = ProfileOption,
    env_file: Optional[Path] = EnvFileOption,
):
    """Interactive question-answering session. Type 'exit' or an empty line to quit."""
    asyncio.run(_chat_async(config_file, profile, env_file))


async def _chat_async(config_file: Optional[Path], profile: Optional[list[str]], env_file: Optional[Path]):
    """Async implementation of chat command."""
    config = _load_config(config_file, profile, env_file)
    runtime = await _start_runtime(config)
    memory = ConversationMemory()

    try:
        try:
            await _load_knowledge_base(runtime)
        except IngestionError as e:
            console.print(f"[red]Error loading knowledge base: {escape(str(e))}[/red]")
            raise typer.Exit(1)

        console.print("[bold]RAG Question-Answering System[/bold]")
        console.print("Type 'exit' to quit")
        console.print("------------------------------")

        while True:
            question = console.input("\n[cyan]Enter your question:[/cyan] ").strip()

            if not question or question.lower() in EXIT_WORDS:
                console.print("Exiting the application. Goodbye!")
                break

            try:
                console.print("\n[dim]Thinking...[/dim]")
                answer = await runtime.rag_service.query(question, memory)
                console.print("\n[green]Response:[/green]")
                console.print(answer, markup=False, highlight=False)
            except QueryError as e:
                console.print(f"[red]Error processing your question: {escape(str(e))}[/red]")
    finally:
        await runtime.close()


@app.command()
def load(
    config_file: Optional[Path] = ConfigOption,
    profile: Optional[list[str]] = ProfileOption,
    env_file: Optional[Path] = EnvFileOption,
):
    """Load the configured sources into the vector store."""
    asyncio.run(_load_async(config_file, profile, env_file))


async def _load_async(config_file: Optional[Path], profile: Optional[list[str]], env_file: Optional[Path]):
    """Async implementation of load command."""
    config = _load_config(config_file, profile, env_file)
    runtime = await _start_runtime(config)

    try:
        report = await _load_knowledge_base(runtime)
    except IngestionError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    finally:
        await runtime.close()

    if report.skipped and report.reason == "ingestion_disabled":
        console.print("[yellow]Ingestion is disabled. Activate it with --profile rag.[/yellow]")
        return
    if report.skipped:
        console.print("[yellow]Knowledge base already loaded, nothing to do.[/yellow]")
        return

    table = Table(title="Knowledge Base Load")
    table.add_column("Source", style="cyan")
    table.add_column("Chunks", style="green", justify="right")
    for source_id, count in report.chunk_counts.items():
        table.add_row(source_id, str(count))
    table.add_row("[bold]total[/bold]", f"[bold]{report.total_chunks}[/bold]")
    console.print(table)


@app.command()
def info(
    config_file: Optional[Path] = ConfigOption,
    profile: Optional[list[str]] = ProfileOption,
    env_file: Optional[Path] = EnvFileOption,
):
    """Show system information and configuration."""
    config = _load_config(config_file, profile, env_file)
    startup = resolve_startup(config)

    table = Table(title="ragcourse configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Active Profiles", ", ".join(config.active_profiles) or "(none)")
    table.add_row("Ingestion Enabled", str(startup.ingestion_enabled))
    table.add_row("Vector Backend", startup.backend.value)
    table.add_row("Collection", config.vector_store.collection_name)
    table.add_row("Chat Provider", config.chat.provider.value)
    table.add_row("Chat Model", config.chat.model_name)
    table.add_row("Embedding Model", config.embedding.model_name)
    table.add_row("Top K", str(config.retrieval.top_k))
    table.add_row("Probe Query", config.knowledge_base.probe_query)
    table.add_row("Sources", ", ".join(s.source_id for s in config.knowledge_base.sources))
    table.add_row("Log Level", config.logging.level.value)

    console.print(table)


async def _start_runtime(config: AppConfig) -> Runtime:
    """Build the runtime, turning setup failures into a clean exit."""
    try:
        return await build_runtime(config)
    except (ProviderError, StorageError) as e:
        console.print(f"[red]Error initializing components: {escape(str(e))}[/red]")
        raise typer.Exit(1)


async def _load_knowledge_base(runtime: Runtime) -> LoadReport:
    """Run the loader; it is a no-op unless ingestion is enabled."""
    report = await runtime.loader.load()
    if not report.skipped:
        console.print(f"[cyan]Loaded {report.total_chunks} chunk(s) into the knowledge base[/cyan]")
    return report


def _print_sources(results) -> None:
    if not results:
        console.print("[yellow]No relevant information found[/yellow]")
        return
    for i, result in enumerate(results, 1):
        source = result.chunk.metadata.get("source", "unknown")
        console.print(f"[bold cyan]{i}. {source} (relevance {result.score:.4f})[/bold cyan]")
        console.print(f"   {result.chunk.content[:300]}", markup=False, highlight=False)
    console.print()


def _load_config(
    config_file: Optional[Path],
    profiles: Optional[list[str]] = None,
    env_file: Optional[Path] = None,
) -> AppConfig:
    """Load configuration and setup logging."""
    if config_file is None:
        config_file = get_default_config_path()
    if env_file is None and Path(".env").exists():
        env_file = Path(".env")

    try:
        config = load_config(config_file, profiles=profiles, env_file=env_file)
    except ConfigError as e:
        console.print(f"[red]Configuration error: {escape(e.message)}[/red]")
        raise typer.Exit(1)

    configure_from_config(config.logging)
    return config


if __name__ == "__main__":
    app()
