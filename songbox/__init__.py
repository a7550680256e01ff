"""
songbox: a personal audio-playback client with an offline download cache.
"""

__version__ = "0.3.0"
