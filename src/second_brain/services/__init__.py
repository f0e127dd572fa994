"""Services package - AI clients, ingestion and search orchestration."""
