"""Binance spot REST adapter."""

from .snapshot_fetcher import BinanceSnapshotFetcher

__all__ = ["BinanceSnapshotFetcher"]
