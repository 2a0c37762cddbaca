"""
Playwright MCP CLI

A command line front-end for the Playwright MCP server. The server runs as a
subprocess and is driven over newline-delimited JSON-RPC on its stdio pipes.
"""

__version__ = "1.0.0"
