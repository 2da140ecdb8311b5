"""Resolve, plan and download R packages from CRAN-like repositories."""

__version__ = "0.1.0"