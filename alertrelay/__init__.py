"""Alertmanager to GitLab issue relay."""
