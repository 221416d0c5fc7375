"""HTTP surface for the pre-plan service."""
