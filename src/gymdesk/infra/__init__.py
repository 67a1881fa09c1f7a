"""Infrastructure adapters for the remote data store."""
