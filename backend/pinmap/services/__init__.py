"""Services for tile generation, custom map uploads and boundary ingestion."""
