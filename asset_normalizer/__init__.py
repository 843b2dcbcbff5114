"""Asset Normalizer — classify, resize and re-encode uploaded media."""

__version__ = "0.1.0"
