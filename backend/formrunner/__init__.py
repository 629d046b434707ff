"""Form runtime: conditional step navigation, validation and progress for multi-step forms."""

__version__ = "1.0.0"
