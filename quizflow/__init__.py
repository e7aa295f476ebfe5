"""Questionnaire flow engine: declarative graphs, validation and sessions."""

__version__ = "0.1.0"
