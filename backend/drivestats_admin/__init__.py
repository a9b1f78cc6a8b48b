"""Admin backend for the driving-stats app: push notification dispatch."""
