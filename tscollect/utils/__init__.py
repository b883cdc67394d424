"""TSCollect utils."""
