"""Allow-listed reverse proxy for collection images and JSON."""
