"""Typer CLI for running lessons from a terminal."""
