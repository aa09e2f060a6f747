"""Services: embedding client, similarity search, ingestion, watcher, facade."""
