"""driftcheck command-line interface."""
