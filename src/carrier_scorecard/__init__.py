"""Carrier Scorecard MCP Server.

Look up a motor carrier by MC or USDOT number, pull its FMCSA SAFER data, and
score authority, safety, inspections, insurance and double-brokerage risk.
"""

__version__ = "0.1.0"
