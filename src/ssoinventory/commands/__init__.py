"""Command modules for ssoinventory."""

from . import export

__all__ = ["export"]
