"""Domain Layer: records, value objects, interfaces and events.

Nothing in here talks to the network, the disk or the terminal.
"""
