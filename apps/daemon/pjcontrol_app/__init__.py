"""Command-line application for projector control."""
