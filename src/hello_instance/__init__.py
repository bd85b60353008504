"""Simulated fleet worker instance reporting its status to Pub/Sub."""

from importlib import metadata


__all__ = ["__version__"]


try:
    __version__ = metadata.version("hello-instance")
except metadata.PackageNotFoundError:  # pragma: no cover - during local dev without install
    __version__ = "0.1.0"
