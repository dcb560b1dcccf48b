"""SVG to layered PSD conversion service."""
