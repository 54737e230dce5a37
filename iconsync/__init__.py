"""IconSync: versioned SVG icon collections with Figma synchronization."""

__version__ = "0.1.0"
