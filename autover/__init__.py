"""autover - change-impact analysis and autonomous semantic versioning."""

__version__ = "0.1.0"
