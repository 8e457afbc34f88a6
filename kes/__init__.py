"""Key management building blocks: sealed secrets, a caching secret store, path policies, metrics, a retrying HTTP client and terminal tables."""

__version__ = "0.1.0"