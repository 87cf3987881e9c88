"""Service layer: home registry, metrics merge, upload storage, pipeline and ingestion."""
