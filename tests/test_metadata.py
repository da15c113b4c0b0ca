from pathlib import Path

from rag_service.chunking.metadata import build_chunk_metadata, build_file_metadata


class TestChunkMetadata:
    def test_index_and_count_for_every_chunk(self):
        total = 4
        metas = [build_chunk_metadata(i, total, {"source": "x"}) for i in range(total)]

        for i, meta in enumerate(metas):
            assert meta["chunk_index"] == i
            assert meta["chunk_count"] == total
            assert meta["source"] == "x"

    def test_base_is_not_mutated(self):
        base = {"batch_id": "b1"}
        meta = build_chunk_metadata(0, 1, base)

        assert base == {"batch_id": "b1"}
        assert meta is not base

    def test_no_base(self):
        assert build_chunk_metadata(2, 3) == {"chunk_index": 2, "chunk_count": 3}


class TestFileMetadata:
    def test_file_fields(self, tmp_path: Path):
        path = tmp_path / "notes.md"
        path.write_text("hello")

        meta = build_file_metadata(path, {"loaded_by": "tests"})

        assert meta["loaded_by"] == "tests"
        assert meta["source"] == "file"
        assert meta["file_path"] == str(path)
        assert meta["absolute_path"] == str(path.resolve())
        assert meta["file_name"] == "notes.md"
        assert meta["file_ext"] == ".md"
        assert "loaded_at" in meta
