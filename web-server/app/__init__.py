"""Traffic capture demo web-server."""
