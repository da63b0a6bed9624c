"""TaskFlow: personal to-do client on top of Supabase."""

__version__ = "1.0.0"
