"""ApplyOS test suite."""
