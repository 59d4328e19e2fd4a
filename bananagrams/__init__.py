"""Multiplayer Bananagrams rooms with board word verification."""

__version__ = "0.1.0"
