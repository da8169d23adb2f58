"""tsterm -- terminal sessions to tailnet machines over WebSockets.

The client talks to a backend through two sequential WebSocket channels:
a control channel used for peer discovery and configuration, and a
session channel that carries keystrokes, screen output and terminal
geometry once a machine has been chosen.
"""

__version__ = "0.1.0"
