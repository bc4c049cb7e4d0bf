"""Cadence: recurring chore tracking with status derivation and smart weekly scheduling."""

__version__ = "0.1.0"
