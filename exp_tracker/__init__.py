"""EXP Tracker - per-spot EXP%/hour sampling and ranking."""

__version__ = "0.1.0"
