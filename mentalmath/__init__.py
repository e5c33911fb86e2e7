"""Mental Math: timed and fixed-count arithmetic practice with match history and statistics."""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
