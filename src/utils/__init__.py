"""Shared utilities: configuration, logging, errors and identifiers."""
