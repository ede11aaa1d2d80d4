"""Domain layer: entities and services of collection sync.

Nothing in this package talks to the network directly; remote access goes
through the RemoteCollectionClient interface.
"""
