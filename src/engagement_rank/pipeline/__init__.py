"""Discovery pipeline — post records and the runner that feeds the scoring core."""
