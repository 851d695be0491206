"""Custom routing cost models and the base/query merge."""
