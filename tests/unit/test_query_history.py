"""Unit tests for SqlHistory functionality."""

import pytest

from lsql.query_history import SqlHistory


class TestSqlHistory:
    """Unit tests for SqlHistory class."""

    @pytest.fixture
    def history(self, tmp_path):
        """Create a SqlHistory in a directory that does not exist yet."""
        return SqlHistory(tmp_path / "nested" / "history")

    def test_missing_file_is_empty(self, history):
        """Test that a history never written to has no entries."""
        assert history.load() == []
        assert history.recent() == []

    def test_append_creates_file(self, history):
        """Test that the first append creates the file and its directory."""
        history.append("SELECT * FROM topic1;")

        assert history.path.exists()
        assert history.path.read_text() == "SELECT * FROM topic1;\n"

    def test_append_keeps_order(self, history):
        """Test that statements are read back oldest first."""
        for statement in ["SELECT 1;", "SELECT 2;", "SELECT 3;"]:
            history.append(statement)

        assert history.load() == ["SELECT 1;", "SELECT 2;", "SELECT 3;"]

    def test_multiline_collapsed(self, history):
        """Test that one statement always occupies one line."""
        history.append("SELECT *\nFROM topic1;")

        assert history.load() == ["SELECT * FROM topic1;"]

    def test_blank_ignored(self, history):
        """Test that blank statements are not recorded."""
        history.append("   ")

        assert not history.path.exists()

    def test_recent_limit(self, history):
        """Test that recent returns the newest entries."""
        for i in range(5):
            history.append(f"SELECT {i};")

        assert history.recent(2) == ["SELECT 3;", "SELECT 4;"]
        assert history.recent(0) == []

    def test_clear(self, history):
        """Test clearing the history."""
        history.append("SELECT 1;")
        history.append("SELECT 2;")

        assert history.clear() == 2
        assert history.load() == []
        assert history.clear() == 0
