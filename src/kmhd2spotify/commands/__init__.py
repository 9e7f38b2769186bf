"""Command handlers for the kmhd2spotify CLI. Each returns a process exit code."""
