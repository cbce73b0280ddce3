"""
Deferred-loading coordinator internals.

The coordinator owns the forking flag, the pending-module queue and the one-shot
callback list; everything else here feeds it (identifier grammar, loaders,
configuration, logging, pragma parsing).
"""
