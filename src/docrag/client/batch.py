"""Processing of a single ingestion batch file.

A batch file holds one extracted document per line. Each document is
chunked, and chunks are embedded and upserted in groups of
``upsert_batch_size``. A line that cannot be parsed is skipped; an embedding
or store failure aborts the batch so none of its cache entries are committed.
"""

import logging
from pathlib import Path
from urllib.parse import urlsplit

from docrag.client.chunking import create_chunks
from docrag.client.ingest_cache import IngestionCache
from docrag.client.models import BatchResult, CacheEntry, Chunk, ExtractedDocument
from docrag.constants import (
    BATCH_FILE_SUFFIX,
    CHUNK_ID_PREFIX,
    DONE_FILE_SUFFIX,
    UPSERT_BATCH_SIZE,
)
from docrag.errors import MalformedRecord, ProviderError, StoreError
from docrag.llm.base import EmbeddingService
from docrag.service.vector_store import ChromaRestClient, VectorRecord, strip_lone_surrogates

logger = logging.getLogger(__name__)


def source_label(config_name: str, url: str) -> str:
    """Build the human-readable source label stored with each chunk."""
    path = urlsplit(url).path or "/"
    return f"{config_name} - {path}"


def done_path(batch_file: Path) -> Path:
    """Name a processed batch file: ``batch-001.jsonl`` -> ``batch-001.done.jsonl``."""
    name = batch_file.name
    if name.endswith(BATCH_FILE_SUFFIX):
        name = name[: -len(BATCH_FILE_SUFFIX)]
    return batch_file.with_name(f"{name}{DONE_FILE_SUFFIX}")


def flush_chunks(
    chunks: list[Chunk], embedder: EmbeddingService, store: ChromaRestClient
) -> int:
    """Embed and upsert a group of chunks.

    Args:
        chunks: Chunks to write
        embedder: Embedding client
        store: Vector store client

    Returns:
        int: Number of chunks upserted
    """
    if not chunks:
        return 0

    texts = [strip_lone_surrogates(chunk.text) for chunk in chunks]
    embeddings = embedder.embed_batch(texts)
    records = [
        VectorRecord(id=chunk.id, embedding=embedding, text=text, source=chunk.source, url=chunk.url)
        for chunk, text, embedding in zip(chunks, texts, embeddings)
    ]
    return store.upsert_batch(records)


def process_batch(
    batch_file: Path | str,
    config_name: str,
    embedder: EmbeddingService,
    store: ChromaRestClient,
    cache: IngestionCache | None = None,
    upsert_batch_size: int = UPSERT_BATCH_SIZE,
    id_prefix: str = CHUNK_ID_PREFIX,
) -> BatchResult:
    """Chunk, embed and upsert every document of a batch file.

    On success the file is renamed with the done suffix so a rerun does not
    process it again.

    Args:
        batch_file: Path to the newline-delimited JSON batch
        config_name: Corpus name used in source labels
        embedder: Embedding client
        store: Vector store client
        cache: Optional ingestion cache; unchanged documents are skipped
        upsert_batch_size: Chunks per embed/upsert call
        id_prefix: First component of chunk ids

    Returns:
        BatchResult: Counts and cache entries, or an error with no entries
    """
    batch_file = Path(batch_file)
    result = BatchResult()
    pending: list[Chunk] = []

    logger.info(f"📦 Processing batch {batch_file.name}")
    try:
        with batch_file.open(encoding="utf-8") as handle:
            for line_number, line in enumerate(handle, start=1):
                if not line.strip():
                    continue
                try:
                    doc = ExtractedDocument.from_json_line(line)
                except MalformedRecord as e:
                    logger.warning(f"⚠️ Skipping {batch_file.name}:{line_number}: {e}")
                    continue

                if cache is not None and not cache.should_reprocess(doc):
                    result.skipped += 1
                    continue

                chunks = create_chunks(
                    doc.text,
                    id_prefix=id_prefix,
                    url=doc.url,
                    source=source_label(config_name, doc.url),
                )
                for chunk in chunks:
                    pending.append(chunk)
                    if len(pending) >= upsert_batch_size:
                        result.chunks_added += flush_chunks(pending, embedder, store)
                        pending = []

                result.cache_entries.append(
                    CacheEntry(url=doc.url, hash=doc.content_hash, lastmod=doc.lastmod)
                )
                result.processed += 1

        result.chunks_added += flush_chunks(pending, embedder, store)
    except (ProviderError, StoreError, OSError) as e:
        logger.error(f"❌ Batch {batch_file.name} failed: {e}")
        return BatchResult(error=f"{type(e).__name__}: {e}")

    try:
        batch_file.rename(done_path(batch_file))
    except OSError as e:
        # Chunks are already upserted; a rerun just overwrites them.
        logger.warning(f"⚠️ Could not mark {batch_file.name} as done: {e}")

    logger.info(
        f"✅ Batch {batch_file.name}: {result.processed} processed, "
        f"{result.skipped} unchanged, {result.chunks_added} chunks"
    )
    return result
