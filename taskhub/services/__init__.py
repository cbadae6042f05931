"""Domain services: access control and user lookup."""
