"""apiprobe - autonomous API discovery against a live browser tab."""

__version__ = "0.1.0"
