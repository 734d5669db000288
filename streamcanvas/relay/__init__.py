"""SSE relay service for the assistant chat surface."""
