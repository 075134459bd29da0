"""
wavedev - Hot-reload development session for audio plugins.
"""

__version__ = "0.1.0"
