"""Utility helpers shared by core components."""
