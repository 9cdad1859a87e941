"""Season aggregation, rankings and the two rating models."""
