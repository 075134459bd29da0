"""
wavedev.commands - CLI command implementations.
"""
