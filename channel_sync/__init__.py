"""Channel synchronization engine for hotel OTA connections."""

__version__ = "1.0.0"
