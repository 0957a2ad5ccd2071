"""Exporters package — convert matching results to output formats."""
from procurematch.exporters.markdown import render_markdown

__all__ = ["render_markdown"]
