"""Command line interface (python -m civreg_import.cli)."""
