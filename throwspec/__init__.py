"""Throws-clause specificity analysis for resolved Java program models."""

__version__ = "0.1.0"
