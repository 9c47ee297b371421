"""Command-line interface for DocRAG using Click."""

import os
from pathlib import Path

import click
from dotenv import load_dotenv

from docrag.client.cli_helpers import (
    configure_logging,
    create_store,
    format_search_result,
    get_collection_info,
)
from docrag.client.ingest_cache import IngestionCache
from docrag.client.orchestrator import find_batch_files, run_ingestion
from docrag.constants import (
    DEFAULT_INGEST_CACHE_PATH,
    DEFAULT_INGEST_WORKERS,
    DEFAULT_TOP_K,
    get_worker_timeout,
)
from docrag.llm import get_embedding_client
from docrag.service.retrieval import RetrievalService

# Load environment variables
load_dotenv()


@click.command()
@click.argument(
    "batch_dir",
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
)
@click.option(
    "--config-name",
    type=str,
    required=True,
    help="Corpus name used in chunk source labels (e.g. 'nextjs-docs')",
)
@click.option(
    "--cache",
    "cache_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help=f"Ingestion cache file (default: INGEST_CACHE_PATH env or '{DEFAULT_INGEST_CACHE_PATH}')",
)
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=DEFAULT_INGEST_WORKERS,
    help=f"Batch worker processes to run at once (default: {DEFAULT_INGEST_WORKERS})",
)
@click.option(
    "--worker-timeout",
    type=float,
    default=None,
    help="Seconds before a batch worker is killed (default: WORKER_TIMEOUT env, or none)",
)
def ingest(
    batch_dir: Path,
    config_name: str,
    cache_path: Path | None,
    workers: int,
    worker_timeout: float | None,
) -> None:
    """Ingest the pending batch files in BATCH_DIR into the vector store.

    Each batch file is processed by its own worker process. Processed files
    are renamed to *.done.jsonl.

    Example:
        docrag-ingest extracted/ --config-name nextjs-docs
        docrag-ingest extracted/ --config-name nextjs-docs --workers 2
    """
    configure_logging()
    cache_path = cache_path or Path(os.getenv("INGEST_CACHE_PATH", DEFAULT_INGEST_CACHE_PATH))
    timeout = worker_timeout if worker_timeout is not None else get_worker_timeout()

    batch_files = find_batch_files(batch_dir)
    if not batch_files:
        click.echo(f"No pending batch files found in '{batch_dir}'")
        return

    cache = IngestionCache.open(cache_path)
    click.echo(f"Found {len(batch_files)} batch file(s)")
    click.echo(f"Cache: {cache_path} ({len(cache)} entries)\n")

    summary = run_ingestion(
        batch_dir,
        config_name,
        cache,
        max_workers=workers,
        worker_timeout=timeout,
    )

    click.echo(
        f"✓ {summary.batches - len(summary.failed_batches)}/{summary.batches} batches succeeded: "
        f"{summary.processed} documents processed, {summary.skipped} unchanged, "
        f"{summary.chunks_added} chunks upserted"
    )
    if not summary.ok:
        for name, error in sorted(summary.failed_batches.items()):
            click.echo(f"  ✗ {name}: {error}", err=True)
        click.echo("\nFailed batches were left in place and will be retried next run.", err=True)
        raise click.Abort()


@click.command()
def count() -> None:
    """Show the number of chunks in the vector store.

    Example:
        docrag-count
    """
    configure_logging()
    _, collection, chunk_count = get_collection_info(create_store())
    if chunk_count is None:
        raise click.Abort()
    click.echo(f"📊 Collection '{collection}' contains {chunk_count} chunk(s)")


@click.command()
@click.argument("query", type=str)
@click.option(
    "--top-k",
    type=click.IntRange(min=1),
    default=DEFAULT_TOP_K,
    help=f"Number of results to return (default: {DEFAULT_TOP_K})",
)
def search(query: str, top_k: int) -> None:
    """Search the vector store for chunks similar to QUERY.

    Example:
        docrag-search "how do I configure caching"
        docrag-search "routing" --top-k 3
    """
    configure_logging()
    click.echo(f"🔍 Searching for: '{query}'")
    click.echo(f"   Returning top {top_k} results...\n")

    retrieval = RetrievalService(get_embedding_client(), create_store())
    results = retrieval.retrieve(query, top_k=top_k)

    if not results:
        click.echo("No results found.")
        return

    click.echo(f"✅ Found {len(results)} result(s):\n")
    for i, result in enumerate(results, 1):
        click.echo(format_search_result(i, result))


@click.command()
@click.option("--yes", "-y", is_flag=True, default=False, help="Skip confirmation prompt")
def delete_collection(yes: bool) -> None:
    """Delete the vector store collection and all its chunks.

    WARNING: This is irreversible. The ingestion cache is not touched; delete
    it as well to re-ingest everything.

    Example:
        docrag-delete-collection          # Will prompt for confirmation
        docrag-delete-collection --yes    # Skip confirmation
    """
    configure_logging()
    store = create_store()
    host, collection, chunk_count = get_collection_info(store)
    if chunk_count is None:
        raise click.Abort()

    if not yes:
        click.echo(f"⚠️  WARNING: You are about to delete the collection '{collection}'")
        click.echo(f"   Location: {host}")
        click.echo(f"📊 It currently contains {chunk_count} chunk(s)\n")
        if not click.confirm("Are you sure you want to proceed?", default=False):
            click.echo("Deletion cancelled.")
            return

    if store.delete_collection():
        click.echo(f"✓ Collection '{collection}' deleted")
    else:
        click.echo(f"✓ Collection '{collection}' does not exist")


if __name__ == "__main__":
    ingest()
