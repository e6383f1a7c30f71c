"""Storage network upload contract."""
