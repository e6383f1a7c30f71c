"""Local preview web application."""
