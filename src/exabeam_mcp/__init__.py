"""MCP server exposing Exabeam SIEM search and user analytics as tools."""
