"""Command-line entry points for sparsegrid."""
