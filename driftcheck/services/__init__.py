"""Pipeline services for driftcheck."""
