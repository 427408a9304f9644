"""Domain logic: pricing, aggregation, suggestions, config policy and services."""
