"""HTTP surface of the corrector proxy."""
