"""Domain layer: estimation pipeline and history."""
