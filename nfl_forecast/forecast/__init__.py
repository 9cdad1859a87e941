"""Workflows over the data source, models and stored state."""
