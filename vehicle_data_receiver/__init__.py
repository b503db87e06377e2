"""
Vehicle Data Receiver - failed event dead-letter store and retry coordinator
"""

__version__ = "0.1.0"
