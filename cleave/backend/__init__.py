"""Backends: compiled program and deployment artifacts."""
