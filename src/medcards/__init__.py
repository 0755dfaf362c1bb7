"""Spaced-repetition study engine for clinical flashcards."""

__version__ = "0.1.0"
