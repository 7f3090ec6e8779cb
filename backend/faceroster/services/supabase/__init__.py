"""Supabase client module."""
