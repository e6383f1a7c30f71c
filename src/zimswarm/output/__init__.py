"""Output writers for converted archives."""
