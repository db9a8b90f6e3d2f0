"""Statement history for the lsql shell."""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class SqlHistory:
    """
    Append-only log of executed statements, one per line, in a plain text file.

    Each completed execution appends the raw line the user typed; the file is
    read back at shell start to seed the prompt's history.
    """

    def __init__(self, path: str | Path):
        """
        Initialize history.

        Args:
            path: History file location. It and its parent directory are
                created on the first append.
        """
        self.path = Path(path).expanduser()

    def append(self, statement: str) -> None:
        """Record one executed statement."""
        line = " ".join(statement.splitlines()).strip()
        if not line:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(line + "\n")
        logger.debug("history: appended %r to %s", line, self.path)

    def load(self) -> list[str]:
        """All recorded statements, oldest first. A missing file means none."""
        try:
            with open(self.path, encoding="utf-8") as f:
                return [line.rstrip("\n") for line in f if line.strip()]
        except FileNotFoundError:
            return []

    def recent(self, limit: int = 10) -> list[str]:
        """The last `limit` statements, oldest first."""
        if limit <= 0:
            return []
        return self.load()[-limit:]

    def clear(self) -> int:
        """
        Clear statement history.

        Returns:
            Number of statements removed.
        """
        count = len(self.load())
        if self.path.exists():
            self.path.unlink()
        return count
