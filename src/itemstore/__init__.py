"""itemstore - cached JSON record store kept coherent with external edits."""

__version__ = "0.1.0"
