"""Campus club API request pipeline."""

__version__ = "0.1.0"
