"""Slipway - serve and compile static sites from a single source tree."""

__version__ = "0.3.0"
