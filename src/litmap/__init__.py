"""Litmap - knowledge-graph engine behind a research project's literature map."""

__version__ = "0.1.0"
