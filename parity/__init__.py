"""Shared plumbing for talking to the databases under reconciliation."""
