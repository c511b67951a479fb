"""Daily Quiz competition backend."""
