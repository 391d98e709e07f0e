"""HTTP server that verifies signed URLs and serves files."""
