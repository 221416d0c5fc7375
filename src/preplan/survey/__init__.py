"""Out-of-band Surveyor-General diagram downloads."""
