"""Polymarket (Gamma API) fetcher and adapter."""

from predwatch.ingestion.polymarket.gamma import GammaClient, PolymarketConnector

__all__ = ["GammaClient", "PolymarketConnector"]
