"""zimswarm - turn ZIM archives into servable resources for Swarm."""

__version__ = "0.1.0"
