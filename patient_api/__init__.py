"""
Patient API: backend for the telehealth brand platform.
"""
