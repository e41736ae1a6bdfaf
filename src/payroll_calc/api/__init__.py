"""HTTP adapter around the calculation engine."""
