"""Helpers used by the scene loaders (triangulation, embedded images)."""
