"""Domain layer: feed ingestion, catalog access, matching, and sync."""
