"""
apps-ports
Find which process (and which container) owns a network port, and stop it safely.
"""
__version__ = "1.0.0"
