"""Paginated help index and the default help commands."""
