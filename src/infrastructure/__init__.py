"""Infrastructure layer - external I/O adapters."""
