"""Command line front end for NAS panel displays."""
