"""Domain services: persistence, ordering, aggregation and access control."""
