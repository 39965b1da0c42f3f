"""API Resilience Implementations.

Contains the polite request scheduler, the retry service with exponential
backoff, and the bounded-concurrency batch mapper.
Bounded Context: API Resilience
"""
