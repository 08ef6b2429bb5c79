"""Collaborator implementations and command sources."""
