"""Outbound push delivery."""
