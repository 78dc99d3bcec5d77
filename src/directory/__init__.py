"""Directory Service — read access to staff, appointment and reminder records."""
