"""envops - helper for cloud-hosted project environments."""

__version__ = "0.1.0"
