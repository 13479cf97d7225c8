"""Platform integrations."""
