"""Property plant inventory with iNaturalist observation import."""
