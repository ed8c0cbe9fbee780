"""BEpusdt payment bridge."""
