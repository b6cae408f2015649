"""Jukebox - automated disc ripping for robotic optical disc changers."""

__version__ = "1.0.0"
