"""Command line interface for optionsengine."""
