"""ifcraft - host network interface configuration over MCP."""

__version__ = "0.1.0"
