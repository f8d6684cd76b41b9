"""
zxping Services

Two layers:
1. Watchdog Service - decision engine and control loop
2. System Services - host side effects (network tuning, adbd, reboot, logs)
"""
