"""Terminal rendering of delivered output."""
