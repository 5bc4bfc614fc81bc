"""Application layer: use cases over the catalog."""
