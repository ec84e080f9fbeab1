"""HTTP routes for the long-form story API."""
