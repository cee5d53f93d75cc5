"""Ports and application state shared by the subsystems."""
