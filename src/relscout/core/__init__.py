"""Core infrastructure: logging, configuration, errors, connections, workers."""
