"""Tests for batch processing, document parsing and the batch worker."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from docrag.client.batch import done_path, process_batch, source_label
from docrag.client.ingest_cache import IngestionCache
from docrag.client.models import BatchRequest, BatchResult, ExtractedDocument
from docrag.client.worker import main as worker_main
from docrag.client.worker import run_worker
from docrag.errors import MalformedRecord, ProviderError, StoreError


def documents(count: int) -> list[dict]:
    return [
        {
            "url": f"https://docs.example.com/page-{i}",
            "text": f"Page {i} explains topic {i}.",
            "content_hash": f"hash-{i}",
        }
        for i in range(count)
    ]


class TestExtractedDocument:
    """Tests for parsing batch file lines."""

    def test_parse_valid_line(self):
        """A complete record is parsed."""
        doc = ExtractedDocument.from_json_line(
            '{"url": "https://a.com/x", "hash": "h", "text": "t", "lastmod": "2025-01-01"}'
        )
        assert doc.url == "https://a.com/x"
        assert doc.content_hash == "h"
        assert doc.lastmod == "2025-01-01"

    def test_lastmod_is_optional(self):
        """Records without lastmod are valid."""
        doc = ExtractedDocument.from_json_line('{"url": "https://a.com/x", "hash": "h", "text": ""}')
        assert doc.lastmod is None

    @pytest.mark.parametrize(
        "line",
        [
            "not json",
            "[1, 2]",
            '{"url": "https://a.com/x", "text": "t"}',
            '{"url": "https://a.com/x", "hash": 5, "text": "t"}',
            '{"url": "", "hash": "h", "text": "t"}',
            '{"url": "http://[broken/page", "hash": "h", "text": "t"}',
            '{"url": "/docs/relative", "hash": "h", "text": "t"}',
        ],
    )
    def test_malformed_lines(self, line):
        """Invalid records raise MalformedRecord."""
        with pytest.raises(MalformedRecord):
            ExtractedDocument.from_json_line(line)


class TestHelpers:
    """Tests for naming helpers."""

    def test_source_label(self):
        assert source_label("nextjs-docs", "https://nextjs.org/docs/app?x=1") == "nextjs-docs - /docs/app"
        assert source_label("docs", "https://example.com") == "docs - /"

    def test_done_path(self, tmp_path):
        assert done_path(tmp_path / "batch-001.jsonl").name == "batch-001.done.jsonl"


class TestProcessBatch:
    """Tests for process_batch."""

    def test_malformed_line_is_skipped(self, write_batch, mock_embedder, mock_store):
        """One bad line among ten still processes the other nine."""
        lines = documents(9)
        lines.insert(4, '{"url": "https://docs.example.com/broken", "text": ')
        batch_file = write_batch(lines)

        result = process_batch(batch_file, "docs", mock_embedder, mock_store)

        assert result.ok
        assert result.processed == 9
        assert result.chunks_added == 9
        assert len(result.cache_entries) == 9
        assert not batch_file.exists()
        assert done_path(batch_file).exists()

    def test_unparseable_url_is_skipped(self, write_batch, mock_embedder, mock_store):
        """A record whose url cannot be parsed is skipped like any malformed line."""
        lines = documents(9)
        lines.insert(4, '{"url": "http://[broken/page", "hash": "h", "text": "t"}')
        batch_file = write_batch(lines)

        result = process_batch(batch_file, "docs", mock_embedder, mock_store)

        assert result.ok
        assert result.processed == 9
        assert [e.url for e in result.cache_entries] == [d["url"] for d in documents(9)]
        assert done_path(batch_file).exists()

    def test_chunks_flushed_in_groups(self, write_batch, mock_embedder, mock_store):
        """Upserts are issued in groups of upsert_batch_size plus a final partial one."""
        batch_file = write_batch(documents(5))

        result = process_batch(batch_file, "docs", mock_embedder, mock_store, upsert_batch_size=2)

        assert result.chunks_added == 5
        sizes = [len(call.args[0]) for call in mock_store.upsert_batch.call_args_list]
        assert sizes == [2, 2, 1]

    def test_records_carry_metadata(self, write_batch, mock_embedder, mock_store):
        """Upserted records include text, source label and URL."""
        batch_file = write_batch(documents(1))

        process_batch(batch_file, "nextjs-docs", mock_embedder, mock_store)

        record = mock_store.upsert_batch.call_args.args[0][0]
        assert record.text == "Page 0 explains topic 0."
        assert record.source == "nextjs-docs - /page-0"
        assert record.url == "https://docs.example.com/page-0"
        assert record.id.startswith("sitemap:")

    def test_rerun_with_cache_adds_nothing(self, write_batch, tmp_path, mock_embedder, mock_store):
        """Re-ingesting unchanged documents upserts zero chunks."""
        cache = IngestionCache(tmp_path / "cache.json")
        first = process_batch(write_batch(documents(3)), "docs", mock_embedder, mock_store, cache)
        cache.commit(first.cache_entries)
        mock_store.upsert_batch.reset_mock()

        second = process_batch(
            write_batch(documents(3), name="batch-002.jsonl"), "docs", mock_embedder, mock_store, cache
        )

        assert first.chunks_added == 3
        assert second.ok
        assert second.chunks_added == 0
        assert second.processed == 0
        assert second.skipped == 3
        mock_store.upsert_batch.assert_not_called()

    def test_changed_document_is_reprocessed(self, write_batch, tmp_path, mock_embedder, mock_store):
        """Only the document whose hash changed is processed again."""
        cache = IngestionCache(tmp_path / "cache.json")
        cache.commit(process_batch(write_batch(documents(3)), "docs", mock_embedder, mock_store, cache).cache_entries)

        changed = documents(3)
        changed[1]["content_hash"] = "hash-1b"
        result = process_batch(
            write_batch(changed, name="batch-002.jsonl"), "docs", mock_embedder, mock_store, cache
        )

        assert result.processed == 1
        assert result.skipped == 2
        assert [e.url for e in result.cache_entries] == ["https://docs.example.com/page-1"]

    def test_provider_failure_aborts_batch(self, write_batch, mock_embedder, mock_store):
        """An embedding failure reports an error with no cache entries and keeps the file."""
        mock_embedder.embed_batch.side_effect = ProviderError("connection refused")
        batch_file = write_batch(documents(3))

        result = process_batch(batch_file, "docs", mock_embedder, mock_store)

        assert not result.ok
        assert "connection refused" in result.error
        assert result.cache_entries == []
        assert result.processed == 0
        assert batch_file.exists()

    def test_store_failure_aborts_batch(self, write_batch, mock_embedder, mock_store):
        """A store failure reports an error and keeps the file."""
        mock_store.upsert_batch.side_effect = StoreError("500")
        batch_file = write_batch(documents(2))

        result = process_batch(batch_file, "docs", mock_embedder, mock_store)

        assert not result.ok
        assert result.error.startswith("StoreError")
        assert batch_file.exists()

    def test_empty_text_produces_no_chunks(self, write_batch, mock_embedder, mock_store):
        """A document with blank text is recorded but adds no chunks."""
        batch_file = write_batch([{"text": "   "}])

        result = process_batch(batch_file, "docs", mock_embedder, mock_store)

        assert result.processed == 1
        assert result.chunks_added == 0
        mock_embedder.embed_batch.assert_not_called()


class TestBatchResult:
    """Tests for the worker summary format."""

    def test_error_only_serialized_when_set(self):
        assert "error" not in BatchResult(processed=1).to_dict()
        assert BatchResult(error="boom").to_dict()["error"] == "boom"

    def test_from_dict(self):
        result = BatchResult.from_dict(
            {
                "processed": 2,
                "chunks_added": 5,
                "skipped": 1,
                "cache_entries": [{"url": "https://a.com", "hash": "h", "lastmod": None}],
            }
        )
        assert result.ok
        assert result.chunks_added == 5
        assert result.cache_entries[0].url == "https://a.com"


class TestWorker:
    """Tests for the batch worker entry point."""

    def setup_method(self):
        """Set up test fixtures."""
        self.runner = CliRunner()

    @patch("docrag.client.worker.ChromaRestClient")
    @patch("docrag.client.worker.get_embedding_client")
    def test_run_worker_uses_cache_snapshot(
        self, mock_get_embedder, mock_store_cls, write_batch, tmp_path, mock_embedder, mock_store
    ):
        """The worker skips documents already in the cache file."""
        mock_get_embedder.return_value = mock_embedder
        mock_store_cls.return_value = mock_store
        cache_path = tmp_path / "cache.json"
        cache_path.write_text(json.dumps({"https://docs.example.com/page-0": {"hash": "hash-0"}}))

        result = run_worker(BatchRequest(write_batch(documents(2)), "docs", cache_path))

        assert result.processed == 1
        assert result.skipped == 1
        # The worker never writes the cache itself
        assert json.loads(cache_path.read_text()) == {"https://docs.example.com/page-0": {"hash": "hash-0"}}

    @patch("docrag.client.worker.run_worker")
    def test_main_prints_summary(self, mock_run_worker, write_batch):
        """The last stdout line is the JSON summary and the exit code is 0."""
        mock_run_worker.return_value = BatchResult(processed=3, chunks_added=7)

        result = self.runner.invoke(worker_main, [str(write_batch(documents(1))), "docs"])

        assert result.exit_code == 0
        summary = json.loads(result.output.strip().splitlines()[-1])
        assert summary["processed"] == 3
        assert summary["chunks_added"] == 7

    @patch("docrag.client.worker.run_worker")
    def test_main_reports_crash(self, mock_run_worker, write_batch):
        """An unexpected exception becomes an error summary and exit code 1."""
        mock_run_worker.side_effect = RuntimeError("out of memory")

        result = self.runner.invoke(worker_main, [str(write_batch(documents(1))), "docs"])

        assert result.exit_code == 1
        summary = json.loads(result.output.strip().splitlines()[-1])
        assert "out of memory" in summary["error"]
        assert summary["cache_entries"] == []
