"""Main entry point for the metwall application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import typer
import logging
import asyncio
import sys

from pathlib import Path
from typing import Annotated, Any, Coroutine, Dict, List, Optional

# --- Setup Logging Early ---
# Use basic config until setup_logging is called with potentially custom settings
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

# --- Core Layer ---
from metwall.core.command_handler import CommandHandler
from metwall.core.services.collection_service import CollectionService

# --- Infrastructure Layer ---
# Config
from metwall.infrastructure.config.settings import (
    load_configuration, get_config, get_scheduler_settings, get_retry_settings,
    get_cache_settings, get_image_queue_settings, get_proxy_settings,
)
# UI
from metwall.infrastructure.cli.display import ConsoleDisplay
# Cache
from metwall.infrastructure.cache.durable_store import DiskCacheStore, MemoryStore
from metwall.infrastructure.cache.record_cache import RecordCacheImpl
# Transport
from metwall.infrastructure.http.collection_client import CollectionTransport
# Resilience
from metwall.infrastructure.resilience.scheduler import PoliteScheduler
from metwall.infrastructure.resilience.api_retry import ApiRetryService
# Proxy
from metwall.infrastructure.proxy.server import run_server
# Monitoring
from metwall.infrastructure.monitoring.logger_setup import DEFAULT_LOG_FORMAT, setup_logging

# --- Dependency Injection Container (Manual) ---

def create_dependencies(persist: bool = True) -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root. One scheduler, one cache and one
    transport are shared by everything a command does.
    """
    logger.debug("Initializing application dependencies...")
    dependencies: Dict[str, Any] = {}

    # 1. Load Configuration First
    load_configuration()
    log_level_name = str(get_config('logging.level', 'WARNING')).upper()
    log_level = getattr(logging, log_level_name, logging.WARNING)
    setup_logging(
        log_level=log_level,
        log_file=get_config('logging.file'),
        log_format=get_config("logging.format", DEFAULT_LOG_FORMAT),
    )

    scheduler_settings = get_scheduler_settings()
    retry_settings = get_retry_settings()
    cache_settings = get_cache_settings()

    # 2. Instantiate Infrastructure Adapters & Services
    dependencies['ui'] = ConsoleDisplay()
    dependencies['store'] = DiskCacheStore(cache_settings.store_dir) if persist else MemoryStore()
    dependencies['record_cache'] = RecordCacheImpl(
        store=dependencies['store'],
        store_key=cache_settings.store_key,
        debounce_s=cache_settings.debounce_s,
    )
    dependencies['transport'] = CollectionTransport(timeout_s=retry_settings.timeout_s)
    dependencies['scheduler'] = PoliteScheduler(
        max_concurrency=scheduler_settings.max_concurrency,
        min_gap_s=scheduler_settings.min_gap_s,
    )

    # 3. Instantiate Resilience Services
    dependencies['api_retry_service'] = ApiRetryService(
        scheduler=dependencies['scheduler'],
        transport=dependencies['transport'].fetch_json,
        max_retries=retry_settings.max_retries,
        initial_backoff_s=retry_settings.initial_backoff_s,
        backoff_factor=retry_settings.backoff_factor,
        jitter_s=retry_settings.jitter_s,
    )

    # 4. Instantiate Core Services (injecting dependencies)
    dependencies['collection_service'] = CollectionService(
        api_retry_service=dependencies['api_retry_service'],
        record_cache=dependencies['record_cache'],
    )

    # 5. Instantiate Command Handler
    dependencies['command_handler'] = CommandHandler(
        collection_service=dependencies['collection_service'],
        record_cache=dependencies['record_cache'],
        ui=dependencies['ui'],
        image_concurrency=get_image_queue_settings().max_concurrency,
        proxy_base_url=get_proxy_settings().base_url,
    )
    logger.debug("All dependencies initialized successfully.")
    return dependencies

_dependencies: Optional[Dict[str, Any]] = None
_persist = True

def get_dependencies() -> Dict[str, Any]:
    """Returns the process-wide dependencies, creating them on first use."""
    global _dependencies
    if _dependencies is None:
        try:
            _dependencies = create_dependencies(persist=_persist)
        except Exception as e:
            logger.error(f"Fatal Error during application initialization: {e}", exc_info=True)
            print(f"FATAL ERROR during initialization: {e}", file=sys.stderr)
            sys.exit(1)
    return _dependencies

# --- Typer App Definition ---
app = typer.Typer(
    name="metwall",
    help="metwall: build polite, cached artwork walls from the Met collection.",
    add_completion=False,
)

@app.callback()
def configure(
    no_persist: Annotated[bool, typer.Option("--no-persist", help="Keep the record cache in memory only.")] = False,
):
    """metwall: build polite, cached artwork walls from the Met collection."""
    global _persist
    _persist = not no_persist

# --- Helper for Running Async Commands ---
def run_async(coro: Coroutine[Any, Any, Any]) -> None:
    """Runs an async command, then releases the transport and flushes the cache."""
    deps = get_dependencies()

    async def runner() -> None:
        try:
            await coro
        finally:
            deps['record_cache'].flush()
            await deps['transport'].aclose()

    try:
        asyncio.run(runner())
    except Exception as e:
        logger.error(f"Error executing async command: {e}", exc_info=True)
        deps['ui'].display_error(f"Command execution failed: {e}")
        raise typer.Exit(code=1)

# --- CLI Commands ---

@app.command()
def search(
    keywords: Annotated[List[str], typer.Argument(help="Keywords; one card is picked per keyword.")],
    per_keyword: Annotated[int, typer.Option("--per-keyword", min=1, help="Records to pick per keyword.")] = 1,
    max_candidates: Annotated[int, typer.Option("--max-candidates", min=1, help="Object ids examined per keyword.")] = 20,
    pool: Annotated[int, typer.Option("--pool", min=1, help="Concurrent lookups per batch.")] = 3,
):
    """Pick artwork for one or more keywords."""
    handler: CommandHandler = get_dependencies()['command_handler']
    run_async(handler.handle_search(keywords, per_keyword=per_keyword, max_candidates=max_candidates, pool=pool))

@app.command()
def fetch(
    object_ids: Annotated[List[str], typer.Argument(help="Object ids to look up.")],
    pool: Annotated[int, typer.Option("--pool", min=1, help="Concurrent lookups.")] = 3,
):
    """Fetch specific objects by id (cache first)."""
    handler: CommandHandler = get_dependencies()['command_handler']
    run_async(handler.handle_fetch(object_ids, pool=pool))

@app.command()
def wall(
    want: Annotated[int, typer.Option("--want", min=1, help="Number of curated ids to load.")] = 26,
    pool: Annotated[int, typer.Option("--pool", min=1, help="Concurrent lookups.")] = 6,
    download_dir: Annotated[Optional[Path], typer.Option(
        "--download-dir", file_okay=False, dir_okay=True, resolve_path=True,
        help="Also download every card's image into this directory.",
    )] = None,
):
    """Load the curated default wall."""
    handler: CommandHandler = get_dependencies()['command_handler']
    run_async(handler.handle_wall(want=want, pool=pool, download_dir=download_dir))

@app.command(name="clear-cache")
def clear_cache_command(
    level: Annotated[str, typer.Option(help="Level ('l1', 'l2', 'all').")] = 'all'
):
    """Clears the record cache."""
    handler: CommandHandler = get_dependencies()['command_handler']
    handler.handle_clear_cache(level)

@app.command()
def serve(
    port: Annotated[Optional[int], typer.Option("--port", help="Port to listen on.")] = None,
    host: Annotated[str, typer.Option("--host", help="Interface to bind.")] = "127.0.0.1",
):
    """Run the allow-listed image/JSON proxy."""
    load_configuration()
    run_server(port=port or get_proxy_settings().port, host=host)

# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()

if __name__ == "__main__":
    cli_entry_point()
