"""Claude Code usage helpers: configuration, live-session hooks, insights and OTLP metric export."""

__version__ = "0.2.3"