"""Statement reading, extraction, layout and rendering services."""
