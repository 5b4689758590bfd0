"""Cross-domain context and persistence against the external domain stores."""
