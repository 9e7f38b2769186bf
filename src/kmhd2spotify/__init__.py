"""
kmhd2spotify - sync the KMHD jazz radio playlist into monthly Spotify playlists.
"""

__version__ = "0.1.0"
