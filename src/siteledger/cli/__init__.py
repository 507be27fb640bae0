"""CLI layer for siteledger."""
