"""Fan-out of batch files to isolated worker processes.

Each batch file is handed to its own worker process. Up to ``max_workers``
workers run at once; their JSON summaries are collected here and cache
entries of successful batches are committed one batch at a time, so
concurrent workers never race on the cache file.
"""

import json
import logging
import subprocess
import sys
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path

from docrag.client.ingest_cache import IngestionCache
from docrag.client.models import BatchRequest, BatchResult
from docrag.constants import BATCH_FILE_SUFFIX, DEFAULT_INGEST_WORKERS, DONE_FILE_SUFFIX

logger = logging.getLogger(__name__)

WORKER_MODULE = "docrag.client.worker"

BatchRunner = Callable[[BatchRequest, float | None], BatchResult]


@dataclass
class IngestionSummary:
    """Totals over all batches of an ingestion run."""

    batches: int = 0
    processed: int = 0
    chunks_added: int = 0
    skipped: int = 0
    failed_batches: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed_batches


def find_batch_files(batch_dir: Path) -> list[Path]:
    """List batch files that have not been processed yet, in name order."""
    return sorted(
        path
        for path in batch_dir.glob(f"*{BATCH_FILE_SUFFIX}")
        if path.is_file() and not path.name.endswith(DONE_FILE_SUFFIX)
    )


def parse_worker_output(stdout: str) -> BatchResult | None:
    """Find the JSON summary in a worker's stdout (the last JSON object line)."""
    for line in reversed(stdout.strip().splitlines()):
        try:
            data = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            try:
                return BatchResult.from_dict(data)
            except (KeyError, TypeError, ValueError):
                return None
    return None


def spawn_batch_worker(request: BatchRequest, timeout: float | None = None) -> BatchResult:
    """Run one batch in a fresh Python process.

    Args:
        request: The batch to process
        timeout: Optional wall-clock limit in seconds

    Returns:
        BatchResult: The worker's summary, or an error result if the worker
            timed out, crashed or printed no summary
    """
    cmd = [sys.executable, "-m", WORKER_MODULE, str(request.batch_file), request.config_name]
    if request.cache_path is not None:
        cmd += ["--cache", str(request.cache_path)]

    try:
        completed = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except subprocess.TimeoutExpired:
        return BatchResult(error=f"Worker timed out after {timeout}s")
    except OSError as e:
        return BatchResult(error=f"Could not start worker: {e}")

    result = parse_worker_output(completed.stdout)
    if result is None:
        stderr_tail = completed.stderr.strip()[-500:]
        return BatchResult(
            error=f"Worker exited with code {completed.returncode} and no summary: {stderr_tail}"
        )
    if completed.returncode != 0 and result.ok:
        result.error = f"Worker exited with code {completed.returncode}"
    if not result.ok:
        result.cache_entries = []
    return result


def run_ingestion(
    batch_dir: Path,
    config_name: str,
    cache: IngestionCache,
    max_workers: int = DEFAULT_INGEST_WORKERS,
    worker_timeout: float | None = None,
    runner: BatchRunner = spawn_batch_worker,
) -> IngestionSummary:
    """Process every pending batch file in a directory.

    Args:
        batch_dir: Directory holding ``*.jsonl`` batch files
        config_name: Corpus name used in source labels
        cache: Loaded ingestion cache; updated after each successful batch
        max_workers: Maximum concurrent worker processes
        worker_timeout: Optional per-worker wall-clock limit in seconds
        runner: Function that runs one batch (default: spawn_batch_worker)

    Returns:
        IngestionSummary: Aggregate counts and failed batch names
    """
    summary = IngestionSummary()
    batch_files = find_batch_files(batch_dir)
    if not batch_files:
        logger.info(f"ℹ️ No pending batch files in {batch_dir}")
        return summary

    logger.info(f"🚀 Ingesting {len(batch_files)} batch file(s) with {max_workers} worker(s)")
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {
            executor.submit(
                runner, BatchRequest(path, config_name, cache.path), worker_timeout
            ): path
            for path in batch_files
        }
        for future in as_completed(futures):
            path = futures[future]
            summary.batches += 1
            try:
                result = future.result()
            except Exception as e:
                logger.error(f"❌ Batch {path.name} could not be run: {e}", exc_info=True)
                summary.failed_batches[path.name] = str(e)
                continue

            if not result.ok:
                logger.error(f"❌ Batch {path.name} failed: {result.error}")
                summary.failed_batches[path.name] = result.error or "unknown error"
                continue

            cache.commit(result.cache_entries)
            summary.processed += result.processed
            summary.chunks_added += result.chunks_added
            summary.skipped += result.skipped
            logger.info(
                f"✅ Batch {path.name}: {result.processed} processed, "
                f"{result.chunks_added} chunks"
            )

    return summary
