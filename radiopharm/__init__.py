"""Order management for radiopharmaceutical production and distribution."""

__version__ = "0.1.0"
