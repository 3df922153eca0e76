"""Materialization of discovered packages and fallback installs."""
