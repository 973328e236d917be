"""Shared HTTP plumbing for the FastAPI application."""
