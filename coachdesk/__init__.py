"""Coach questionnaire templates, assignments and answers."""

__version__ = "1.0.0"
