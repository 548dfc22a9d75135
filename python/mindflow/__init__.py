"""MindFlow: mood-tagged personal journal API and client data layer."""
