"""Shipment management service."""
