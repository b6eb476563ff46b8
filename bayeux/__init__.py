"""Low-level and high-level clients for servers that speak the Bayeux protocol over HTTP long-polling."""

__version__ = "2.3.0"