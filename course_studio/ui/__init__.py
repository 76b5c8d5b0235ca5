"""Terminal renderings of the course catalogue."""
