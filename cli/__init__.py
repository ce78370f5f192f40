"""Command-line front end: argument parsing and console rendering."""
