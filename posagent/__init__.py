"""Headless theater POS print agent."""

__version__ = "1.0.0"
