"""I/O layer: artifact paths, Arrow schemas, and offline log readers."""
