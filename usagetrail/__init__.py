"""usagetrail - foreground usage session reconstruction."""

from .version import __version__

__all__ = ["__version__"]
