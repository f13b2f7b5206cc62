"""HA Gateway: resilient Home Assistant tool execution for agents."""

__version__ = "0.1.0"
