"""Command-line interface for MathTutor."""
