"""Two-player tic-tac-toe over line-delimited TCP."""

__version__ = "1.2.0"
