"""
meez - Recipe parsing pipeline.

Turns a recipe web page or pasted recipe text into a structured,
normalized recipe:
- Tiered HTML extraction (structured data, plugin selectors, raw fallback)
- Language-model parsing with provider fallback
- Cache + embedding similarity reuse
- Rule-based ingredient parsing for grocery aggregation
"""

__version__ = "0.3.0"
