"""UI page modules."""
