"""Integration with external generation capabilities."""
