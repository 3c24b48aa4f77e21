"""Supabase table and storage accessors."""
