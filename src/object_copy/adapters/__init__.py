"""Adapters connecting object copy to external systems."""
