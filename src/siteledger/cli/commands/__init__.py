"""CLI commands for siteledger."""
