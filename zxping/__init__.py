"""
zxping - network and CPU watchdog for router-class devices
"""

__version__ = "1.0.0"
