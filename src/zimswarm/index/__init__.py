"""Metadata index and archive parsing pipeline."""
