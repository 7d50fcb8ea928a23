"""Services: platform identification, resources, extraction, loading."""
