"""Adapters for external collaborators (coverage and mask providers)."""
