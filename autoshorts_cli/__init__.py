"""AutoShorts CLI - command line front end for autoshorts-core."""

__version__ = "0.1.0"
