"""Entry analysis, candidate extraction and adaptive prompt generation."""
