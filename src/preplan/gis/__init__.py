"""Geocoding and ArcGIS spatial query clients."""
