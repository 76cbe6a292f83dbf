"""Core definitions shared by the transport and session layers.

- data: Connection parameters, client records and enums
- events: Event model, queue and listener registry
- protocol.py: Verb envelope, reserved verbs and wire codec
- errors.py: Exceptions raised synchronously to callers
"""
