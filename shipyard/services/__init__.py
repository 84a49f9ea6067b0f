"""Delivery services: credentials, artifacts, checks, stages and uploads."""
