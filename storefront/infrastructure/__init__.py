"""Infrastructure layer: external APIs and caches."""
