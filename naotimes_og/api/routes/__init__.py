"""Route modules, one per artifact family."""
