"""Market data ingestion: transport, throttling, adapters and streaming."""
