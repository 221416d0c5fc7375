"""Development envelope and indicative yield calculator."""
