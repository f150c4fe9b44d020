"""Application services over the record store."""
