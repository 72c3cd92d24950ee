"""npm registry access and type-coverage classification."""
