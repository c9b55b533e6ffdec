"""HTTP routes for the network transport."""
