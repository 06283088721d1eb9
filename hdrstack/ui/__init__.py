"""Qt bindings for the application shell."""
