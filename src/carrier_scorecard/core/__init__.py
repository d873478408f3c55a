"""Core business logic: scoring, normalization, provider clients, and data models.

This module is framework-agnostic. It has no dependency on MCP, FastMCP,
or Starlette; the server only wires these pieces to its endpoints and tools.
"""
