"""wdsched - weighted deadline scheduling for a single serial resource."""

__version__ = "0.1.0"
