"""
Superset MCP Server - Model Context Protocol server for Apache Superset.

Provides MCP tools for listing databases, tables and fields and for running
natural-language queries through Superset's SQL Lab API.
"""

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

__version__ = "0.1.0"
