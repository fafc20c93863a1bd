"""Schema and data reconciliation runner for the university intranet's Supabase store."""

__version__ = "0.1.0"
