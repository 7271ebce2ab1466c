"""Archive reading, set inference, hashing and derivative generation."""
