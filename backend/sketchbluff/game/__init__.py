"""Game domain: roster, prompts, scoring, timers and the session state machine.

Nothing in here knows about Flask or Socket.IO; the realtime layer wires a
publish callback and a timer factory into each session.
"""
