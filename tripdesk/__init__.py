"""tripdesk - admin API client for the tourism booking dashboard."""

__version__ = "0.1.0"
__logo__ = "🧭"
