"""Tests for the staging overlay."""

from optionsengine.options.staging import Origin, StagingBuffer


class TestStagingBuffer:
    """Test overlay bookkeeping."""

    def test_load_missing_record(self):
        buffer = StagingBuffer()
        buffer.load(None)

        assert buffer.snapshot() is None
        assert buffer.as_dict() == {}

    def test_load_marks_values_stored(self):
        buffer = StagingBuffer()
        buffer.load({"a": 1})

        assert buffer.entry("a").origin is Origin.STORED
        assert buffer.snapshot() == {"a": 1}
        assert buffer.pending_keys() == []

    def test_seed_never_overrides(self):
        buffer = StagingBuffer()
        buffer.load({"a": 1})

        assert not buffer.seed("a", 2)
        assert buffer.seed("b", 2)
        assert buffer.get("a") == 1
        assert buffer.pending_keys() == ["b"]
        assert buffer.dirty_keys() == []

    def test_stage_marks_dirty(self):
        buffer = StagingBuffer()
        buffer.stage("a", 1)

        assert buffer.dirty_keys() == ["a"]
        assert "a" in buffer
        assert len(buffer) == 1

    def test_values_are_copied(self):
        buffer = StagingBuffer()
        value = {"tags": ["a"]}
        buffer.stage("a", value)
        value["tags"].append("b")
        buffer.get("a")["tags"].append("c")

        assert buffer.get("a") == {"tags": ["a"]}

    def test_mark_persisted_clears_dirty(self):
        buffer = StagingBuffer()
        buffer.stage("a", 1)
        buffer.seed("b", 2)
        buffer.mark_persisted(buffer.as_dict())

        assert buffer.pending_keys() == []
        assert buffer.snapshot() == {"a": 1, "b": 2}

    def test_refresh_keeps_dirty_and_seeded_values(self):
        buffer = StagingBuffer()
        buffer.load({"a": 1, "gone": 0})
        buffer.stage("b", 2)
        buffer.seed("c", 3)

        buffer.refresh({"a": 10, "b": 20, "d": 4})

        assert buffer.as_dict() == {"a": 10, "b": 2, "c": 3, "d": 4}
        assert buffer.snapshot() == {"a": 10, "b": 20, "d": 4}

    def test_refresh_backend_overrides_seed(self):
        buffer = StagingBuffer()
        buffer.seed("a", 1)
        buffer.refresh({"a": 5})

        assert buffer.entry("a").origin is Origin.STORED
        assert buffer.get("a") == 5

    def test_remove(self):
        buffer = StagingBuffer()
        buffer.stage("a", 1)

        assert buffer.remove("a")
        assert not buffer.remove("a")
        assert buffer.get("a", "missing") == "missing"
