"""Version information for usagetrail."""

__version__ = "0.1.0-dev"
