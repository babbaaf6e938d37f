"""RangeScope - team-scoped topology and asset visibility for cyber ranges."""

__version__ = "0.1.0"
