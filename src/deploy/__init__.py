"""Deployment helpers run from the developer machine, not by the Functions host."""
