"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the application to the outside world (the collection API, the
durable store, the terminal, the image proxy) by implementing the
interfaces defined in the domain layer.
"""
