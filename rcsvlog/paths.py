"""Filename to absolute path resolution."""

from pathlib import Path


def default_data_dir() -> Path:
    """The user's documents directory, or home if there is none."""
    documents = Path.home() / "Documents"
    return documents if documents.is_dir() else Path.home()


class PathResolver:
    """Maps bare filenames into a data directory.

    Absolute paths (after ~ expansion) are returned unchanged.
    """

    def __init__(self, data_dir: str | Path | None = None):
        self.data_dir = (
            Path(data_dir).expanduser() if data_dir else default_data_dir()
        )

    def resolve(self, filename: str | Path) -> str:
        path = Path(filename).expanduser()
        if not path.is_absolute():
            path = self.data_dir / path
        return str(path.resolve())
