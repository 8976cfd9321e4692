"""HTTP service around the signal engine: exchange clients, market data
collection, per-symbol evaluation and the FastAPI app."""
