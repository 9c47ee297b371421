"""Batch worker process.

Runs one batch file in its own process so a crash or runaway memory use in
one batch cannot take down the orchestrator or other batches. The result is
printed as a single JSON line on stdout; logs go to stderr.

Usage:
    python -m docrag.client.worker BATCH_FILE CONFIG_NAME [--cache PATH]
"""

import json
import logging
import os
import sys
from pathlib import Path

import click
from dotenv import load_dotenv

from docrag.client.batch import process_batch
from docrag.client.ingest_cache import IngestionCache
from docrag.client.models import BatchRequest, BatchResult
from docrag.llm import get_embedding_client
from docrag.service.vector_store import ChromaConfig, ChromaRestClient

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def run_worker(request: BatchRequest) -> BatchResult:
    """Build clients from the environment and process one batch.

    Args:
        request: Batch file, corpus name and optional cache path

    Returns:
        BatchResult: The batch summary
    """
    cache = IngestionCache.open(request.cache_path) if request.cache_path else None
    embedder = get_embedding_client()
    store = ChromaRestClient(ChromaConfig.from_env())
    return process_batch(request.batch_file, request.config_name, embedder, store, cache=cache)


@click.command()
@click.argument(
    "batch_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.argument("config_name", type=str)
@click.option(
    "--cache",
    "cache_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Ingestion cache file used to skip unchanged documents (read-only here)",
)
def main(batch_file: Path, config_name: str, cache_path: Path | None) -> None:
    """Process BATCH_FILE and print its JSON summary.

    Exits 0 on success and 1 if the batch failed.
    """
    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "INFO")),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    request = BatchRequest(batch_file=batch_file, config_name=config_name, cache_path=cache_path)
    try:
        result = run_worker(request)
    except Exception as e:
        logger.error(f"❌ Worker crashed on {batch_file.name}: {e}", exc_info=True)
        result = BatchResult(error=f"{type(e).__name__}: {e}")

    click.echo(json.dumps(result.to_dict()))
    sys.exit(0 if result.ok else 1)


if __name__ == "__main__":
    main()
