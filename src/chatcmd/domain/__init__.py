"""Domain layer: pure types, errors, and the restriction language.

Nothing in this package touches the transport, configuration, or logging.
"""
