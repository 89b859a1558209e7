"""Business logic services for the preview pipeline."""
