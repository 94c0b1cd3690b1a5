"""Example scripts for the Whitted ray tracer."""
