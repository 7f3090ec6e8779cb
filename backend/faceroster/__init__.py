"""FaceRoster identity deduplication and merge backend."""
