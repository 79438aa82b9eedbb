"""Concourse resource for Helm charts hosted on ChartMuseum or Harbor."""

__version__ = "1.0.0"
