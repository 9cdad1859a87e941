"""Box-score inputs, team registry, data source and snapshot storage."""
