"""Command line front end (`ota`)."""
