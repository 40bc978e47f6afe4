"""Incident reporting application for the dispatch backend.

Drivers file incident reports against a hospital; hospitals accept or
reject them and follow every change live over a channel-layer feed.
"""
