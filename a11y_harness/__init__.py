"""Accessibility test harnesses (axe-core, Continuum, pa11y) with AMP reporting."""

__version__ = "0.1.0"
