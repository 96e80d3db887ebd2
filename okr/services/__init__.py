"""OKR services."""
