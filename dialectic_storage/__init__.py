"""Deterministic storage paths and document lineage for dialectic generation."""
