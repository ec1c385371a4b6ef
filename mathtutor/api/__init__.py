"""HTTP API for MathTutor."""
