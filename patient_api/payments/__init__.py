"""Payment processor client."""
