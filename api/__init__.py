"""Driving theory quiz HTTP API."""
