"""predwatch - Polymarket/Kalshi watchlist tracker with probability-move alerts."""

__version__ = "0.1.0"
