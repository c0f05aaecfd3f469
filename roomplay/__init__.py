"""Authoritative game-room server for N×N tic-tac-toe and chess."""

__version__ = "1.0.0"
