"""Auxiliary HTML page builders."""
