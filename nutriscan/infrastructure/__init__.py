"""Infrastructure adapters: inference providers and storage."""
