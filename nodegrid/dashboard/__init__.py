"""Textual front end for nodegrid."""
