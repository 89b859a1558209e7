"""HTTP API for the preview service."""
