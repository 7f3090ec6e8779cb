"""Core configuration, logging and HTTP plumbing."""
