"""Partition lifecycle automation for tabular analytics databases."""
from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("tabular-partitions")
except PackageNotFoundError:  # pragma: no cover - during local dev without install
    __version__ = "0.0.0"

__all__ = ["__version__"]
