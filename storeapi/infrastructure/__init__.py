"""Infrastructure layer: settings, logging, stores and persistence."""
