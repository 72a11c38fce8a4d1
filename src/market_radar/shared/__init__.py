"""Shared models and enums used across ingestion, analytics and services."""
