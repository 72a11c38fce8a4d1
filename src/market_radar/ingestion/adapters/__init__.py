"""Exchange and market data source adapters."""
