"""Workspace scanning and module discovery."""
