"""Command line interface for kudeploy."""
