"""See-Think-Do-Care text analysis engine."""

__version__ = "1.0.0"
