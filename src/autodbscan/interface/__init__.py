"""
Interface layer package.

Contains the typer CLI and its output formatters.
"""
