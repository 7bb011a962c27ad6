"""Tests for chunk output verification and assurance reporting."""

import json
from pathlib import Path

from codechunk.chunking.assurance import build_chunk_assurance, is_budget_breach, size_stats
from codechunk.chunking.config import ChunkingConfig
from codechunk.chunking.emitter import chunk_to_record, write_chunks_ndjson
from codechunk.chunking.engine import calculate_coverage, chunk_source
from codechunk.chunking.verify import verify_chunks


def records_for(path, config):
    source = path.read_text(encoding="utf-8")
    chunks = chunk_source(source, config, str(path))
    return [chunk_to_record(chunk, source) for chunk in chunks]


class TestCalculateCoverage:
    def test_full_cover(self):
        assert calculate_coverage([(0, 5), (5, 10)], 10) == (100.0, [], [])

    def test_gaps_and_overlaps(self):
        pct, gaps, overlaps = calculate_coverage([(0, 4), (3, 6), (8, 10)], 12)

        assert gaps == [(6, 8), (10, 12)]
        assert overlaps == [(3, 4)]
        assert pct == 8 / 12 * 100

    def test_empty_file(self):
        assert calculate_coverage([], 0) == (100.0, [], [])


class TestVerifyChunks:
    """Test re-verification of a chunks.ndjson file."""

    def setup_method(self):
        self.config = ChunkingConfig(language="cpp", max_chunk_size=20)

    def write(self, tmp_path, records):
        chunks_file = tmp_path / "chunks.ndjson"
        write_chunks_ndjson(records, chunks_file)
        return chunks_file

    def test_clean_output_passes(self, tmp_path, sample_path):
        chunks_file = self.write(tmp_path, records_for(sample_path, self.config))

        report = verify_chunks(str(chunks_file), max_size=20, out_dir=str(tmp_path / "verify"))

        assert report["status"] == "PASS"
        assert report["violations"] == {
            "files_with_gaps": 0,
            "files_with_overlaps": 0,
            "text_mismatches": 0,
            "budget_breaches": 0,
        }
        assert report["missing_sources"] == []

    def test_reports_are_written(self, tmp_path, sample_path):
        chunks_file = self.write(tmp_path, records_for(sample_path, self.config))

        report = verify_chunks(str(chunks_file), out_dir=str(tmp_path / "verify"))

        verify_dir = Path(report["verify_dir"])
        assert (verify_dir / "report.json").exists()
        assert "**Status:** PASS" in (verify_dir / "report.md").read_text()
        saved = json.loads((verify_dir / "report.json").read_text())
        assert saved["statistics"]["total_chunks"] == len(
            records_for(sample_path, self.config)
        )

    def test_runs_in_quick_succession_keep_separate_reports(self, tmp_path, sample_path):
        chunks_file = self.write(tmp_path, records_for(sample_path, self.config))

        first = verify_chunks(str(chunks_file), out_dir=str(tmp_path / "verify"))
        second = verify_chunks(str(chunks_file), out_dir=str(tmp_path / "verify"))

        assert first["verify_dir"] != second["verify_dir"]
        assert len(list((tmp_path / "verify").iterdir())) == 2

    def test_dropped_chunk_is_a_gap(self, tmp_path, sample_path):
        records = records_for(sample_path, self.config)
        chunks_file = self.write(tmp_path, records[:3] + records[4:])

        report = verify_chunks(str(chunks_file), out_dir=str(tmp_path / "verify"))

        assert report["status"] == "FAIL"
        assert report["violations"]["files_with_gaps"] == 1
        assert list((tmp_path / "verify").glob("*/gaps.json"))

    def test_tampered_text_is_a_mismatch(self, tmp_path, sample_path):
        records = records_for(sample_path, self.config)
        records[1]["text"] = records[1]["text"] + "// extra"
        chunks_file = self.write(tmp_path, records)

        report = verify_chunks(str(chunks_file), out_dir=str(tmp_path / "verify"))

        assert report["status"] == "FAIL"
        assert report["violations"]["text_mismatches"] == 1

    def test_budget_breach(self, tmp_path, sample_path):
        """Test that sizes over a stricter budget without flags are breaches."""
        records = [
            r for r in records_for(sample_path, self.config) if not r["oversized"]
        ]
        for record in records:
            record["oversized"] = False
        chunks_file = self.write(tmp_path, records)

        report = verify_chunks(str(chunks_file), max_size=2, out_dir=str(tmp_path / "verify"))

        assert report["violations"]["budget_breaches"] > 0
        assert report["status"] == "FAIL"

    def test_missing_source_still_checks_coverage(self, tmp_path):
        records = [
            {"chunk_id": "gone.cpp:0000", "file_path": "gone.cpp", "segments": [[0, 5]], "size": 1},
            {"chunk_id": "gone.cpp:0001", "file_path": "gone.cpp", "segments": [[5, 9]], "size": 1},
        ]
        chunks_file = self.write(tmp_path, records)

        report = verify_chunks(
            str(chunks_file), source_root=str(tmp_path), out_dir=str(tmp_path / "verify")
        )

        assert report["missing_sources"] == ["gone.cpp"]
        assert report["status"] == "PASS"


class TestAssurance:
    """Test the run-level assurance report."""

    def test_size_stats(self):
        stats = size_stats([3, 1, 2])
        assert stats == {"count": 3, "min": 1, "median": 2, "p95": 3, "max": 3, "total": 6}
        assert size_stats([])["max"] == 0

    def test_budget_breach_excuses(self):
        assert is_budget_breach({"size": 10}, 5)
        assert not is_budget_breach({"size": 10, "oversized": True}, 5)
        assert not is_budget_breach({"size": 10, "truncated": True}, 5)
        assert not is_budget_breach({"size": 5}, 5)

    def test_clean_run_passes(self, sample_path, sample_source):
        config = ChunkingConfig(language="cpp", max_chunk_size=20)
        records = records_for(sample_path, config)

        report = build_chunk_assurance(
            records, config, file_lengths={str(sample_path): len(sample_source)}
        )

        assert report["status"] == "PASS"
        assert report["sizeCap"]["maxSize"] == 20
        assert report["sizeCap"]["unit"] == "tokens"
        assert report["coverage"]["filesWithGaps"] == 0
        assert report["files"]["chunked"] == 1
        assert report["kinds"]["function"] >= 1
        assert report["flags"]["split"] > 0

    def test_failures_fail_the_run(self, sample_path):
        config = ChunkingConfig(language="cpp")
        records = records_for(sample_path, config)
        failures = [{"file_path": "bad.cpp", "error_type": "MalformedNestingError", "error": "x"}]

        report = build_chunk_assurance(records, config, failures)

        assert report["status"] == "FAIL"
        assert report["files"]["failed"] == 1
        assert report["files"]["processed"] == 2
        assert report["files"]["failures"] == failures
