"""HTTP API for the Parlor chat service."""
