"""Command-line entry points for smamqtt."""
