"""Command line interface for Intrdrm."""
