"""TourScout backend: tour scanning, normalization and discovery."""

__version__ = "0.1.0"
