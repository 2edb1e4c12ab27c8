"""Review dashboard backend: ingestion, moderation and public review API."""

__version__ = "1.0.0"
