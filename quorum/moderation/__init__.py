"""Community reports, consensus voting and resolution."""
