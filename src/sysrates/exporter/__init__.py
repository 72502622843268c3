"""Exporters for computed rates."""
