"""Console logging setup and the JSON Lines rejection log."""
