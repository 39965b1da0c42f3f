"""HTTP transport for the collection API."""
