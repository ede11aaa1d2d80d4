"""Infrastructure layer: remote collection clients."""
