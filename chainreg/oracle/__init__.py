"""Oracle service that bridges a GitHub identity proof into a co-signed registration."""
