"""Caching Service Implementation.

Provides the two-tier record cache (L1: in-memory, L2: durable key/value
store) and the durable store backends.
Bounded Context: Cache Management
"""
