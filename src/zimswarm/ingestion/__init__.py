"""Archive decoding adapters."""
