"""Kalshi fetcher and adapter."""

from predwatch.ingestion.kalshi.client import KalshiClient, KalshiConnector

__all__ = ["KalshiClient", "KalshiConnector"]
