"""Tutor agent construction, stream adaptation and sandbox link handling."""
