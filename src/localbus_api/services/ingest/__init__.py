"""Vehicle poll cycle, persistence and retention."""
