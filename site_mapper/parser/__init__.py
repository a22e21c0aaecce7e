"""site_mapper.parser: markup parsing helpers."""
