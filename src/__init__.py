"""Vocab Review application packages."""
