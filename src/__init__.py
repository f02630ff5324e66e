"""Growth dashboard backend: HTTP API, reporting services, and upstream sync."""
